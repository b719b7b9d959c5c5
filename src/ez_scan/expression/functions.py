"""Time-series function registry.

Functions receive one argument per declared parameter. ``series``
parameters arrive as lazy views (``at(i)``, ``window(n)``, ``history()``)
anchored at the bar being evaluated, with index 0 the current bar and larger
indices further into the past. ``number`` parameters arrive as floats.
Every function returns a float; NaN means "no data".
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterator, Optional, Sequence, Tuple

import numpy as np

from ..core.errors import ArityError, UnknownSymbolError

logger = logging.getLogger(__name__)


class ParamKind(str, Enum):
    SERIES = "series"
    NUMBER = "number"


@dataclass(frozen=True)
class FunctionSpec:
    """A registered function with a fixed signature."""

    name: str
    func: Callable[..., float]
    params: Tuple[ParamKind, ...]
    defaults: Tuple[float, ...] = ()
    default_series: Optional[str] = None

    @property
    def min_arity(self) -> int:
        return len(self.params) - len(self.defaults)

    @property
    def max_arity(self) -> int:
        return len(self.params)

    def check_arity(self, got: int) -> None:
        if self.min_arity <= got <= self.max_arity:
            return
        if self.min_arity == self.max_arity:
            expected = str(self.max_arity)
        else:
            expected = f"{self.min_arity} to {self.max_arity}"
        raise ArityError(self.name, expected, got)


class FunctionRegistry:
    """Named functions available to formulas."""

    def __init__(self):
        self._functions: Dict[str, FunctionSpec] = {}

    def register(
        self,
        name: str,
        func: Callable[..., float],
        params: Sequence[str],
        defaults: Sequence[float] = (),
        default_series: Optional[str] = None,
    ) -> FunctionSpec:
        """Register *func* under *name*; replaces an existing entry.

        With *default_series* (a symbol such as ``"c"``), a call whose first
        argument is a number reads that symbol as its series: ``rsi(14)`` is
        ``rsi(c, 14)``.
        """
        kinds = tuple(ParamKind(p) for p in params)
        if len(defaults) > len(kinds):
            raise ValueError(f"{name}: more defaults than parameters")
        for kind in kinds[len(kinds) - len(defaults):]:
            if kind is ParamKind.SERIES:
                raise ValueError(f"{name}: series parameters cannot have defaults")
        spec = FunctionSpec(
            name=name,
            func=func,
            params=kinds,
            defaults=tuple(float(d) for d in defaults),
            default_series=default_series,
        )
        if name in self._functions:
            logger.debug(f"Replacing function '{name}'")
        self._functions[name] = spec
        return spec

    def function(
        self,
        name: str,
        params: Sequence[str],
        defaults: Sequence[float] = (),
        default_series: Optional[str] = None,
    ):
        """Decorator form of ``register``."""
        def decorator(func: Callable[..., float]) -> Callable[..., float]:
            self.register(name, func, params, defaults, default_series)
            return func
        return decorator

    def get(self, name: str) -> FunctionSpec:
        try:
            return self._functions[name]
        except KeyError:
            raise UnknownSymbolError(name) from None

    def copy(self) -> "FunctionRegistry":
        registry = FunctionRegistry()
        registry._functions = dict(self._functions)
        return registry

    def __contains__(self, name: str) -> bool:
        return name in self._functions

    def __iter__(self) -> Iterator[str]:
        return iter(self._functions)

    @property
    def names(self) -> list:
        return sorted(self._functions)


def as_count(value: float, minimum: int = 1) -> Optional[int]:
    """Interpret a numeric argument as a bar count, or None if unusable."""
    if value is None or math.isnan(value) or math.isinf(value):
        return None
    if not float(value).is_integer() or value < minimum:
        return None
    return int(value)


# ----------------------------------------------------------------------
# Default functions
# ----------------------------------------------------------------------

def _sma(series, window: float) -> float:
    n = as_count(window)
    if n is None:
        return math.nan
    values = series.window(n)
    if np.isnan(values).any():
        return math.nan
    return math.fsum(values) / n


def _ema(series, window: float) -> float:
    n = as_count(window)
    if n is None:
        return math.nan
    history = series.history()[::-1]  # oldest first
    # Seed from the latest unbroken run of values
    gaps = np.flatnonzero(np.isnan(history))
    if len(gaps):
        history = history[gaps[-1] + 1:]
    if len(history) < n:
        return math.nan
    alpha = 2.0 / (n + 1)
    ema = math.fsum(history[:n]) / n
    for price in history[n:]:
        ema = alpha * price + (1 - alpha) * ema
    return ema


def _prv(series, offset: float) -> float:
    k = as_count(offset, minimum=0)
    if k is None:
        return math.nan
    return series.at(k)


def _min(series, window: float) -> float:
    n = as_count(window)
    if n is None:
        return math.nan
    values = series.window(n)
    if np.isnan(values).any():
        return math.nan
    return float(values.min())


def _max(series, window: float) -> float:
    n = as_count(window)
    if n is None:
        return math.nan
    values = series.window(n)
    if np.isnan(values).any():
        return math.nan
    return float(values.max())


def _sum(series, window: float) -> float:
    n = as_count(window)
    if n is None:
        return math.nan
    values = series.window(n)
    if np.isnan(values).any():
        return math.nan
    return math.fsum(values)


def _std(series, window: float) -> float:
    # Sample standard deviation, matching pandas rolling().std()
    n = as_count(window, minimum=2)
    if n is None:
        return math.nan
    values = series.window(n)
    if np.isnan(values).any():
        return math.nan
    return float(np.std(values, ddof=1))


def _rsi(series, window: float) -> float:
    """Relative strength index over simple average gains and losses."""
    n = as_count(window)
    if n is None:
        return math.nan
    values = series.window(n + 1)
    if np.isnan(values).any():
        return math.nan
    changes = values[:-1] - values[1:]
    avg_gain = changes[changes > 0].sum() / n
    avg_loss = -changes[changes < 0].sum() / n
    if avg_loss == 0:
        return 100.0 if avg_gain > 0 else 50.0
    rs = avg_gain / avg_loss
    return float(100.0 - 100.0 / (1.0 + rs))


def _abs(series) -> float:
    return abs(series.at(0))


def create_default_registry() -> FunctionRegistry:
    """Registry with the built-in time-series functions."""
    registry = FunctionRegistry()
    registry.register("sma", _sma, ["series", "number"])
    registry.register("ema", _ema, ["series", "number"])
    registry.register("prv", _prv, ["series", "number"], defaults=[1])
    registry.register("min", _min, ["series", "number"])
    registry.register("max", _max, ["series", "number"])
    registry.register("sum", _sum, ["series", "number"])
    registry.register("std", _std, ["series", "number"])
    registry.register("rsi", _rsi, ["series", "number"], defaults=[14], default_series="c")
    registry.register("abs", _abs, ["series"])
    return registry
