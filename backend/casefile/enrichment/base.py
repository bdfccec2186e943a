"""Shared HTTP plumbing for the lookup clients."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from casefile.config import get_provider_timeout
from casefile.models.outcomes import ErrorCode, LookupFailure

logger = logging.getLogger(__name__)


class ProviderClient:
    """Base for clients that talk to one external provider over HTTP.

    An ``httpx.AsyncClient`` may be injected (tests pass one backed by
    ``httpx.MockTransport``); otherwise a short-lived client is opened per
    request.  Every request is bounded by *timeout*.
    """

    name: str = "provider"

    def __init__(
        self,
        http: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        self._http = http
        self._timeout = timeout if timeout is not None else get_provider_timeout()

    async def _get(self, url: str, **kwargs: Any) -> httpx.Response:
        if self._http is not None:
            return await self._http.get(url, timeout=self._timeout, **kwargs)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.get(url, **kwargs)

    def _network_failure(self, exc: Exception) -> LookupFailure:
        logger.warning("%s request failed: %s", self.name, exc)
        message = str(exc) or exc.__class__.__name__
        return LookupFailure(error=ErrorCode.NETWORK_ERROR, message=message)
