"""In-process evaluation backend over pandas bar data."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from ..compiler.plan import ConditionSet
from ..compiler.request import ColumnSpec, ScanRequest
from ..core.enums import ColumnType
from ..core.errors import BackendError
from ..expression.bindings import SeriesBindings
from ..expression.evaluator import Evaluator
from ..expression.functions import FunctionRegistry
from ..expression.nodes import node_from_dict
from ..temporal.resolver import TemporalResolver
from .base import BackendResponse, EvaluationBackend

logger = logging.getLogger(__name__)


@dataclass
class Instrument:
    """Bar history (oldest first) and metadata for one ticker."""

    ticker: str
    bars: pd.DataFrame
    metadata: Dict[str, Any] = field(default_factory=dict)


class LocalEvaluationBackend(EvaluationBackend):
    """Evaluates scan requests against in-memory instruments.

    Columns come back in sorted key order, which generally differs from the
    configured order. Unless ``push_down_filter`` is set, every instrument is
    returned together with its admission verdict.
    """

    def __init__(
        self,
        markets: Optional[Dict[str, Iterable[Instrument]]] = None,
        functions: Optional[FunctionRegistry] = None,
        push_down_filter: bool = False,
        latency: float = 0.0,
    ):
        """Initialize local backend."""
        self.markets: Dict[str, Dict[str, Instrument]] = {}
        for market, instruments in (markets or {}).items():
            for instrument in instruments:
                self.add_instrument(market, instrument)
        self.evaluator = Evaluator(functions=functions)
        self.resolver = TemporalResolver(self.evaluator)
        self.push_down_filter = push_down_filter
        self.latency = latency
        self.requests: List[ScanRequest] = []

    def add_instrument(self, market: str, instrument: Instrument) -> None:
        self.markets.setdefault(market, {})[instrument.ticker] = instrument

    async def close(self):
        pass

    async def run(self, request: ScanRequest) -> BackendResponse:
        self.requests.append(request)
        if self.latency:
            await asyncio.sleep(self.latency)

        universe = self.markets.get(request.market)
        if universe is None:
            raise BackendError(f"Unknown market '{request.market}'")

        unsupported = [f for f in request.functions if f not in self.evaluator.functions]
        if unsupported:
            raise BackendError(f"Unsupported functions: {', '.join(unsupported)}")

        try:
            admission = ConditionSet.from_dict(request.filter)
            specs = {spec.key: self._prepare(spec) for spec in request.columns}
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            raise BackendError(f"Malformed scan request: {e}") from e

        header = sorted(specs)
        tickers = request.symbols if request.symbols is not None else sorted(universe)

        rows: List[List[Any]] = []
        for ticker in tickers:
            instrument = universe.get(ticker)
            if instrument is None:
                logger.debug(f"Ticker {ticker} not in market {request.market}")
                continue

            series = SeriesBindings.from_frame(instrument.bars, request.fields)
            static = SeriesBindings.from_values(instrument.metadata)
            admitted = admission.evaluate(self.resolver, series, static)
            if self.push_down_filter and not admitted:
                continue

            row = [ticker] + [self._value(specs[key], instrument, series, static) for key in header]
            if not self.push_down_filter:
                row.append(admitted)
            rows.append(row)

        columns = list(header)
        if not self.push_down_filter:
            columns.append(request.admission_key)

        logger.info(f"Evaluated {len(tickers)} tickers in {request.market}, returning {len(rows)} rows")
        return BackendResponse(columns=columns, rows=rows)

    @staticmethod
    def _prepare(spec: ColumnSpec) -> Dict[str, Any]:
        """Rebuild the evaluable form of a column once per request."""
        if spec.type is ColumnType.STATIC:
            return {"type": spec.type, "field": spec.field}
        if spec.type is ColumnType.COMPUTED:
            return {"type": spec.type, "expression": node_from_dict(spec.tree)}
        return {"type": spec.type, "conditions": ConditionSet.from_dict(spec.predicate)}

    def _value(
        self,
        prepared: Dict[str, Any],
        instrument: Instrument,
        series: SeriesBindings,
        static: SeriesBindings,
    ) -> Any:
        kind = prepared["type"]
        if kind is ColumnType.STATIC:
            return self._field_value(instrument, prepared["field"])
        if kind is ColumnType.COMPUTED:
            return self.evaluator.evaluate(prepared["expression"], series, 0)
        return prepared["conditions"].evaluate(self.resolver, series, static)

    @staticmethod
    def _field_value(instrument: Instrument, name: str) -> Any:
        """Metadata value, falling back to the latest bar for series fields."""
        if name in instrument.metadata:
            return instrument.metadata[name]
        if name in instrument.bars.columns and not instrument.bars.empty:
            value = instrument.bars[name].iloc[-1]
            return value.item() if hasattr(value, "item") else value
        return None
