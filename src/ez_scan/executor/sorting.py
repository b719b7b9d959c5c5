"""Client-side ordering of scan rows."""

import math
from typing import Any, List, Sequence, Tuple

from ..compiler.compiler import TICKER_KEY
from ..compiler.plan import CompiledSort
from ..core.enums import SortDirection
from ..core.models import ScanRow


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, float) and math.isnan(value)


def _sort_key(value: Any) -> Tuple[int, Any]:
    # Numbers (bools included) order before text; anything else by its repr.
    if isinstance(value, (bool, int, float)):
        return (0, float(value))
    if isinstance(value, str):
        return (1, value)
    return (2, repr(value))


def _column_value(row: ScanRow, column_id: str) -> Any:
    if column_id == TICKER_KEY:
        return row.ticker
    return row.values.get(column_id)


def sort_rows(rows: Sequence[ScanRow], rules: Sequence[CompiledSort]) -> List[ScanRow]:
    """
    Order rows by *rules*, first rule most significant.

    Missing and NaN values go last whichever the direction. Rows that tie on
    every rule keep ticker-ascending order.
    """
    ordered = sorted(rows, key=lambda r: r.ticker)
    for rule in reversed(rules):
        present = [r for r in ordered if not _is_missing(_column_value(r, rule.column_id))]
        missing = [r for r in ordered if _is_missing(_column_value(r, rule.column_id))]
        present.sort(
            key=lambda r: _sort_key(_column_value(r, rule.column_id)),
            reverse=rule.direction is SortDirection.DESC,
        )
        ordered = present + missing
    return ordered
