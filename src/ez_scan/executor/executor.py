"""Scan executor: compile, dispatch, filter, sort, map."""

import asyncio
import logging
from typing import Dict, Optional

from ..backend.base import EvaluationBackend
from ..compiler.compiler import ScanCompiler
from ..compiler.plan import ScanPlan
from ..compiler.request import ScanRequest, build_request
from ..core.errors import BackendError, ScanExecutionError
from ..core.models import ScanResult, ScanState
from ..mapper.mapper import ResultRowMapper
from .cache import ResultCache
from .session import ScanSession
from .sorting import sort_rows

logger = logging.getLogger(__name__)


class ScanExecutor:
    """
    Runs scans against an evaluation backend.

    Compilation happens before the backend is contacted, so malformed
    configuration never reaches it. Backend failures and timeouts surface as
    ``ScanExecutionError``; there is no internal retry.
    """

    def __init__(
        self,
        backend: EvaluationBackend,
        compiler: Optional[ScanCompiler] = None,
        timeout: float = 30.0,
        cache_ttl: float = 0.0,
        mapper: Optional[ResultRowMapper] = None,
    ):
        """Initialize scan executor."""
        self.backend = backend
        self.compiler = compiler or ScanCompiler()
        self.timeout = timeout
        self.cache = ResultCache(ttl=cache_ttl)
        self.mapper = mapper or ResultRowMapper()
        self._sessions: Dict[str, ScanSession] = {}
        logger.info(f"Scan executor initialized (timeout={timeout}s, cache_ttl={cache_ttl}s)")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def compile(self, state: ScanState) -> ScanPlan:
        return self.compiler.compile(state)

    async def execute(self, state: ScanState) -> ScanResult:
        """Run one scan and return its rows in sorted order."""
        plan = self.compile(state)
        request = build_request(plan)
        key = state.cache_key()
        return await self.cache.get_or_run(key, lambda: self._run(plan, request))

    def session(self, name: str = "default") -> ScanSession:
        """Get or create a named session."""
        if name not in self._sessions:
            self._sessions[name] = ScanSession(self, name)
        return self._sessions[name]

    async def close(self):
        await self.backend.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _run(self, plan: ScanPlan, request: ScanRequest) -> ScanResult:
        response = await self._dispatch(request)
        rows = self.mapper.map_rows(plan, response)
        rows = sort_rows(rows, plan.sort)
        if plan.limit is not None:
            rows = rows[:plan.limit]

        result = self.mapper.map(plan, response, rows)
        logger.info(f"Scan on {plan.market} returned {len(result)} rows")
        return result

    async def _dispatch(self, request: ScanRequest):
        try:
            return await asyncio.wait_for(self.backend.run(request), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"Scan on {request.market} timed out after {self.timeout}s")
            raise ScanExecutionError(f"Backend timed out after {self.timeout}s") from e
        except BackendError as e:
            logger.error(f"Scan on {request.market} failed: {e}")
            raise ScanExecutionError(str(e)) from e
