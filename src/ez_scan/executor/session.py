"""Sequence-numbered scan sessions."""

import logging
from typing import TYPE_CHECKING, Optional

from ..core.errors import ScanError
from ..core.models import ScanResult, ScanState

if TYPE_CHECKING:
    from .executor import ScanExecutor

logger = logging.getLogger(__name__)


class ScanSession:
    """
    Applies only the latest submitted scan.

    Every submission takes the next sequence number. When a request finishes
    after a newer one was submitted, its result (or error) is discarded and
    ``current`` keeps the newest applied result.
    """

    def __init__(self, executor: "ScanExecutor", name: str = "default"):
        """Initialize scan session."""
        self.executor = executor
        self.name = name
        self._sequence = 0
        self.current: Optional[ScanResult] = None
        self.current_sequence = 0
        self.last_error: Optional[ScanError] = None

    @property
    def latest_sequence(self) -> int:
        """Sequence number of the most recent submission."""
        return self._sequence

    def is_stale(self, sequence: int) -> bool:
        return sequence != self._sequence

    async def submit(self, state: ScanState) -> Optional[ScanResult]:
        """
        Run *state* and apply its result if still the latest request.

        Returns the applied result, or None when it was superseded.
        """
        self._sequence += 1
        sequence = self._sequence
        logger.debug(f"Session '{self.name}' submitted request #{sequence}")

        try:
            result = await self.executor.execute(state)
        except ScanError as e:
            if self.is_stale(sequence):
                logger.info(f"Session '{self.name}' discarded error of stale request #{sequence}: {e}")
                return None
            self.last_error = e
            raise

        if self.is_stale(sequence):
            logger.info(
                f"Session '{self.name}' discarded stale result #{sequence} "
                f"(latest is #{self._sequence})"
            )
            return None

        self.current = result
        self.current_sequence = sequence
        self.last_error = None
        logger.info(f"Session '{self.name}' applied result #{sequence} with {len(result)} rows")
        return result
