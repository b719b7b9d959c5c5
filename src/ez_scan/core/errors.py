"""Error taxonomy for the scan engine.

Compilation errors are raised before any backend call and name the column or
condition they were found in. Execution errors are recoverable; the caller
decides whether to retry.
"""

from typing import Optional


class ScanError(Exception):
    """Base class for all scan engine errors."""


class CompilationError(ScanError):
    """Malformed user configuration, detected before dispatch."""

    def __init__(self, message: str, location: Optional[str] = None):
        self.message = message
        self.location = location
        super().__init__(self._format())

    def _format(self) -> str:
        if self.location:
            return f"{self.location}: {self.message}"
        return self.message

    def at(self, location: str) -> "CompilationError":
        """Attach a location unless one is already set."""
        if self.location is None:
            self.location = location
            self.args = (self._format(),)
        return self


class MalformedColumnError(CompilationError):
    """Column type does not match its populated fields."""

    def __init__(self, column_id: str, message: str):
        self.column_id = column_id
        super().__init__(message, location=f"column '{column_id}'")


class MalformedConditionError(CompilationError):
    """Filter condition has an invalid qualifier or value combination."""


class MalformedSortError(CompilationError):
    """Sort rule references a column that is not configured."""

    def __init__(self, column: str):
        self.column = column
        super().__init__(f"unknown sort column '{column}'", location="sort_columns")


class DuplicateColumnError(CompilationError):
    """Two columns share the same id."""

    def __init__(self, column_id: str):
        self.column_id = column_id
        super().__init__(f"duplicate column id '{column_id}'", location="columns")


class UnknownSymbolError(CompilationError):
    """Formula references a symbol or function that is not registered."""

    def __init__(self, symbol: str, location: Optional[str] = None):
        self.symbol = symbol
        super().__init__(f"unknown symbol '{symbol}'", location=location)


class ArityError(CompilationError):
    """Function called with the wrong number of arguments."""

    def __init__(self, function: str, expected: str, got: int, location: Optional[str] = None):
        self.function = function
        self.expected = expected
        self.got = got
        super().__init__(
            f"{function}() takes {expected} argument(s), got {got}", location=location
        )


class InvalidRangeError(CompilationError):
    """Bar count outside the range a temporal qualifier accepts."""


class ExpressionSyntaxError(CompilationError):
    """Formula text cannot be parsed."""

    def __init__(self, message: str, formula: str, position: int, location: Optional[str] = None):
        self.formula = formula
        self.position = position
        super().__init__(f"{message} at position {position} in '{formula}'", location=location)


class ScanExecutionError(ScanError):
    """Backend unavailable, timed out, or returned a malformed response."""


class BackendError(ScanError):
    """Raised by evaluation backends; translated by the executor."""
