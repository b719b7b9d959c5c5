"""Evaluation backend interface."""

from abc import ABC, abstractmethod
from typing import Any, List

from pydantic import BaseModel, Field

from ..compiler.request import ScanRequest


class BackendResponse(BaseModel):
    """Raw positional result of a scan request.

    ``columns`` names the value positions; each row is
    ``[ticker, value_1, value_2, ...]`` in that order.
    """

    columns: List[str] = Field(default_factory=list)
    rows: List[List[Any]] = Field(default_factory=list)


class EvaluationBackend(ABC):
    """Abstract base class for evaluation backends."""

    @abstractmethod
    async def run(self, request: ScanRequest) -> BackendResponse:
        """Evaluate *request*; raise ``BackendError`` on failure."""
        pass

    @abstractmethod
    async def close(self):
        """Release connections."""
        pass
