"""Maps positional backend rows back to named scan rows."""

import logging
import math
from typing import Any, Dict, List, Optional, Sequence

from ..backend.base import BackendResponse
from ..compiler.compiler import ADMISSION_KEY
from ..compiler.plan import CompiledColumn, ScanPlan
from ..core.enums import ColumnType
from ..core.errors import ScanExecutionError
from ..core.models import ResultColumn, ScanResult, ScanRow

logger = logging.getLogger(__name__)


class ResultRowMapper:
    """
    Turns a ``BackendResponse`` into ``ScanRow`` objects.

    The backend names its value positions in ``columns``; that order may
    differ from the configured one. Values are re-keyed by column id and
    emitted in configured order. Nothing is rounded and rows are never
    dropped because a value is NaN.
    """

    def __init__(self, admission_key: str = ADMISSION_KEY):
        self.admission_key = admission_key

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @staticmethod
    def result_columns(plan: ScanPlan) -> List[ResultColumn]:
        """Result header in configured column order."""
        return [ResultColumn(id=c.id, name=c.name, type=c.type) for c in plan.columns]

    def map_rows(self, plan: ScanPlan, response: BackendResponse) -> List[ScanRow]:
        """
        Map every admitted backend row.

        Rows whose admission flag is false are skipped. A response without
        an admission column is taken as already filtered by the backend.
        """
        positions = self._resolve_header(plan, response.columns)
        admission_position = positions.get(self.admission_key)
        width = len(response.columns) + 1

        rows: List[ScanRow] = []
        skipped = 0
        for index, raw in enumerate(response.rows):
            if not isinstance(raw, (list, tuple)) or len(raw) != width:
                raise ScanExecutionError(
                    f"Malformed backend row {index}: expected {width} values, "
                    f"got {len(raw) if isinstance(raw, (list, tuple)) else type(raw).__name__}"
                )
            if admission_position is not None and not self._coerce_bool(raw[admission_position]):
                skipped += 1
                continue
            rows.append(self._map_row(plan.columns, positions, raw, index))

        logger.debug(f"Mapped {len(rows)} rows, skipped {skipped} not admitted")
        return rows

    def map(self, plan: ScanPlan, response: BackendResponse, rows: Optional[List[ScanRow]] = None) -> ScanResult:
        """Build the full result; *rows* overrides the mapped rows when given."""
        if rows is None:
            rows = self.map_rows(plan, response)
        return ScanResult(market=plan.market, columns=self.result_columns(plan), rows=rows)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve_header(self, plan: ScanPlan, header: List[str]) -> Dict[str, int]:
        """Position of each column id inside a raw row (ticker is position 0)."""
        positions: Dict[str, int] = {}
        for index, key in enumerate(header):
            if key in positions:
                raise ScanExecutionError(f"Backend header repeats column '{key}'")
            positions[key] = index + 1

        missing = [c.id for c in plan.columns if c.id not in positions]
        if missing:
            raise ScanExecutionError(f"Backend response is missing columns: {', '.join(missing)}")

        unexpected = set(positions) - set(plan.column_ids) - {self.admission_key}
        if unexpected:
            logger.debug(f"Ignoring extra backend columns: {sorted(unexpected)}")
        return positions

    def _map_row(
        self,
        columns: Sequence[CompiledColumn],
        positions: Dict[str, int],
        raw: List[Any],
        index: int,
    ) -> ScanRow:
        ticker = raw[0]
        if not isinstance(ticker, str) or not ticker:
            raise ScanExecutionError(f"Malformed backend row {index}: missing ticker")

        values: Dict[str, Any] = {}
        for column in columns:
            value = raw[positions[column.id]]
            try:
                values[column.id] = self._coerce(column.type, value)
            except (TypeError, ValueError) as e:
                raise ScanExecutionError(
                    f"Bad value {value!r} for column '{column.id}' of {ticker}: {e}"
                ) from e
        return ScanRow(ticker=ticker, values=values)

    def _coerce(self, column_type: ColumnType, value: Any) -> Any:
        if column_type is ColumnType.COMPUTED:
            return math.nan if value is None else float(value)
        if column_type is ColumnType.CONDITION:
            return self._coerce_bool(value)
        return math.nan if value is None else value

    @staticmethod
    def _coerce_bool(value: Any) -> bool:
        if value is None:
            return False
        if isinstance(value, float) and math.isnan(value):
            return False
        return bool(value)
