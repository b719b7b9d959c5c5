"""Per-instrument series bindings indexed by bar offset."""

import math
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence

import numpy as np
import pandas as pd


class SeriesBindings:
    """Field series for one instrument, latest bar first.

    ``get("close", 0)`` is the most recent close; offsets past the available
    history read as NaN.
    """

    def __init__(self, series: Optional[Mapping[str, np.ndarray]] = None):
        self._series: Dict[str, np.ndarray] = {
            name: np.asarray(values, dtype=float) for name, values in (series or {}).items()
        }

    @classmethod
    def from_frame(cls, df: pd.DataFrame, columns: Optional[Iterable[str]] = None) -> "SeriesBindings":
        """Build from a chronological (oldest first) OHLCV frame."""
        names = list(columns) if columns is not None else list(df.columns)
        series = {}
        for name in names:
            if name not in df.columns:
                continue
            values = pd.to_numeric(df[name], errors="coerce").to_numpy(dtype=float)
            series[name] = values[::-1]
        return cls(series)

    @classmethod
    def from_sequences(cls, series: Mapping[str, Sequence[float]]) -> "SeriesBindings":
        """Build from sequences that are already latest-first."""
        return cls({name: np.asarray(values, dtype=float) for name, values in series.items()})

    @classmethod
    def from_values(cls, values: Mapping[str, Any]) -> "SeriesBindings":
        """Single-bar bindings for static metadata; non-numeric values read as NaN."""
        return cls({name: np.array([_to_float(v)]) for name, v in values.items()})

    def get(self, field: str, offset: int) -> float:
        series = self._series.get(field)
        if series is None or offset < 0 or offset >= len(series):
            return math.nan
        return float(series[offset])

    def window(self, field: str, offset: int, size: int) -> np.ndarray:
        """``size`` values starting at ``offset``, NaN-padded past the history."""
        out = np.full(size, np.nan)
        series = self._series.get(field)
        if series is None or offset < 0:
            return out
        chunk = series[offset:offset + size]
        out[:len(chunk)] = chunk
        return out

    def shift(self, bars: int) -> "SeriesBindings":
        """Bindings as they looked ``bars`` bars ago."""
        return SeriesBindings({name: s[bars:] for name, s in self._series.items()})

    def length(self, field: str) -> int:
        """Number of bars bound for *field*; 0 when unbound."""
        series = self._series.get(field)
        return 0 if series is None else len(series)

    def __contains__(self, field: str) -> bool:
        return field in self._series

    def __len__(self) -> int:
        if not self._series:
            return 0
        return max(len(s) for s in self._series.values())

    @property
    def fields(self) -> set:
        return set(self._series)


def _to_float(value: Any) -> float:
    if value is None:
        return math.nan
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan
