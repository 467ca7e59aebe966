"""
Forwarding of write-shaped public API requests to the write service.

The read API never mutates data. Buy, rent, and release requests (and any other
non-GET public request) are passed through to a separate write service
unchanged; this module only decides that a request is write-shaped and relays
it.
"""
import logging
from dataclasses import dataclass

import httpx

from services.exceptions import UpstreamFailureError

logger = logging.getLogger(__name__)

WRITE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

# Request headers relayed to the write service
FORWARDED_HEADERS = ("authorization", "content-type", "accept")


def is_write_request(method: str) -> bool:
    """Check whether a request method must be forwarded to the write service."""
    return method.upper() in WRITE_METHODS


@dataclass
class ForwardedResponse:
    """Response returned by the write service."""

    status_code: int
    content: bytes
    content_type: str | None


class WriteProxy:
    """Relays write requests to the write service over HTTP."""

    def __init__(self, base_url: str, timeout: float = 10.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    async def forward(
        self,
        method: str,
        path: str,
        headers: dict[str, str],
        body: bytes,
        query: str = "",
    ) -> ForwardedResponse:
        """
        Forward one request and return the write service's response as-is.

        Args:
            method: HTTP method of the incoming request.
            path: Path of the incoming request, e.g. '/api/public/buy'.
            headers: Incoming request headers (only FORWARDED_HEADERS are relayed).
            body: Raw request body.
            query: Raw query string, without the leading '?'.

        Raises:
            UpstreamFailureError: If no write service is configured or it cannot be reached.
        """
        if not self._base_url:
            raise UpstreamFailureError("Write service is not configured")

        url = f"{self._base_url}{path}"
        if query:
            url = f"{url}?{query}"
        relayed = {
            name: value for name, value in headers.items() if name.lower() in FORWARDED_HEADERS
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.request(method, url, headers=relayed, content=body)
        except httpx.TimeoutException as e:
            logger.warning("write_proxy_timeout method=%s path=%s", method, path)
            raise UpstreamFailureError("Write service timed out") from e
        except httpx.RequestError as e:
            logger.warning("write_proxy_failed method=%s path=%s error=%s", method, path, e)
            raise UpstreamFailureError("Write service unavailable") from e

        logger.info(
            "write_proxy_forwarded method=%s path=%s status=%s",
            method,
            path,
            response.status_code,
        )
        return ForwardedResponse(
            status_code=response.status_code,
            content=response.content,
            content_type=response.headers.get("content-type"),
        )
