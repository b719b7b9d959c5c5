"""Core enumerations for the scan engine."""

from enum import Enum


class ColumnType(str, Enum):
    """Kinds of output column."""
    STATIC = "static"
    COMPUTED = "computed"
    CONDITION = "condition"


class ConditionType(str, Enum):
    """Kinds of filter condition."""
    STATIC = "static"
    COMPUTED = "computed"


class EvaluationPeriod(str, Enum):
    """Temporal qualifiers for conditions."""
    NOW = "now"
    WITHIN_LAST = "within_last"
    X_BAR_AGO = "x_bar_ago"


class Logic(str, Enum):
    """Boolean combinators for condition sets."""
    AND = "and"
    OR = "or"


class SortDirection(str, Enum):
    """Sort directions."""
    ASC = "asc"
    DESC = "desc"
