"""Shared HTTP helpers for the Google API clients.

All remote calls go through request_json so that status handling and
error messages are consistent across the YouTube and Natural Language
clients.
"""

import logging
import ssl
from typing import Any

import aiohttp
import certifi

from errors import APIError

logger = logging.getLogger(__name__)

USER_AGENT = "commentscope/0.1 (+aiohttp)"


def create_ssl_context() -> ssl.SSLContext:
    """Create an SSL context that verifies against the certifi bundle."""
    return ssl.create_default_context(cafile=certifi.where())


def new_session(max_connections: int = 10) -> aiohttp.ClientSession:
    """Create a client session for one pipeline run.

    Args:
        max_connections: Connection pool size

    Returns:
        A new aiohttp session (caller closes it)
    """
    connector = aiohttp.TCPConnector(limit=max_connections, ssl=create_ssl_context())
    return aiohttp.ClientSession(connector=connector, headers={"User-Agent": USER_AGENT})


def _error_message(body: Any, status: int) -> str:
    """Pull the human-readable message out of a Google API error body."""
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return f"HTTP {status}: {error['message']}"
    return f"HTTP {status}"


async def request_json(
    session: aiohttp.ClientSession,
    method: str,
    url: str,
    *,
    params: dict[str, Any] | None = None,
    payload: dict[str, Any] | None = None,
    timeout: float = 30.0,
) -> dict[str, Any]:
    """Send a request and decode the JSON reply.

    Args:
        session: aiohttp client session
        method: HTTP method ('GET' or 'POST')
        url: Absolute endpoint URL
        params: Query string parameters
        payload: JSON request body
        timeout: Total timeout for the call in seconds

    Returns:
        Decoded JSON object

    Raises:
        APIError: On a non-2xx status
        asyncio.TimeoutError: When the call exceeds the timeout
        aiohttp.ClientError: On transport failures
    """
    async with session.request(
        method,
        url,
        params=params,
        json=payload,
        timeout=aiohttp.ClientTimeout(total=timeout),
    ) as resp:
        if resp.status >= 300:
            try:
                body = await resp.json(content_type=None)
            except ValueError:
                body = None
            message = _error_message(body, resp.status)
            logger.debug("Request failed | method=%s url=%s status=%d", method, url, resp.status)
            raise APIError(message, status=resp.status)
        return await resp.json(content_type=None)
