"""Thin HTTP wrapper producing retrieval functions for the fetch coordinator."""

import asyncio
import logging
from typing import Any, Dict, Optional

import requests
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential
from tenacity.wait import wait_base

from .errors import TransportError
from .fetcher import Retrieve

logger = logging.getLogger(__name__)

USER_AGENT = "tile-deck/1.0.0"

RETRYABLE_ERRORS = (requests.exceptions.ConnectionError, requests.exceptions.Timeout)


class HTTPClient:
    """Blocking requests session with retries, run off the event loop.

    Connection errors and timeouts are retried with exponential backoff.
    Non-2xx responses raise TransportError carrying the status code.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        max_attempts: int = 3,
        session: Optional[requests.Session] = None,
        backoff: Optional[wait_base] = None,
    ):
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.backoff = backoff or wait_exponential(multiplier=1, min=2, max=10)
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", USER_AGENT)

    def get(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> requests.Response:
        """GET ``url`` and return the response, raising on non-2xx."""

        @retry(
            stop=stop_after_attempt(self.max_attempts),
            wait=self.backoff,
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            reraise=True
        )
        def _send() -> requests.Response:
            logger.debug("Fetching %s", url)
            return self.session.get(url, params=params, headers=headers, timeout=self.timeout)

        response = _send()
        if not response.ok:
            raise TransportError(f"HTTP {response.status_code}: {response.reason}", status=response.status_code)
        return response

    def retriever(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Retrieve:
        """Build a zero-argument coroutine function that GETs ``url``."""

        async def retrieve() -> requests.Response:
            return await asyncio.to_thread(self.get, url, params, headers)

        return retrieve

    def close(self):
        self.session.close()
