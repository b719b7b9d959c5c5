"""HTTP evaluation backend."""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import aiohttp
from pydantic import ValidationError

from ..compiler.request import ScanRequest
from ..core.errors import BackendError
from .base import BackendResponse, EvaluationBackend

logger = logging.getLogger(__name__)


class HttpEvaluationBackend(EvaluationBackend):
    """Posts scan requests to a remote columnar query service."""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """Initialize HTTP backend."""
        self.config = config or {}
        self.base_url = (self.config.get('url') or '').rstrip('/')
        self.api_key = self.config.get('api_key', '')
        self.timeout = self.config.get('timeout', 30)
        self.path = self.config.get('path', '/scan')
        self._session: Optional[aiohttp.ClientSession] = None
        if not self.base_url:
            raise ValueError("HTTP backend requires a url")
        logger.info(f"HTTP evaluation backend initialized ({self.base_url})")

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self._session

    async def close(self):
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def run(self, request: ScanRequest) -> BackendResponse:
        session = await self._get_session()
        payload = request.model_dump(mode="json")

        try:
            async with session.post(
                f"{self.base_url}{self.path}",
                json=payload,
                headers=self._headers(),
            ) as response:
                if response.status != 200:
                    error_text = await response.text()
                    raise BackendError(f"Scan API error {response.status}: {error_text[:200]}")
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Scan request to {self.base_url} failed: {e}")
            raise BackendError(f"Scan request failed: {e}") from e
        except json.JSONDecodeError as e:
            raise BackendError(f"Scan API returned invalid JSON: {e}") from e

        try:
            result = BackendResponse.model_validate(data)
        except ValidationError as e:
            raise BackendError(f"Malformed scan response: {e}") from e

        logger.debug(f"Received {len(result.rows)} rows for market {request.market}")
        return result
