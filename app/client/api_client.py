"""CSRF-aware async HTTP client for the Userdesk API.

The client behaves like a browser talking to the backend: cookies live in a
shared jar, the CSRF cookie is primed through the bootstrap endpoint before
the first mutating request, and its value is echoed back in a header. When
the server answers with the token-mismatch status the client re-primes and
replays the request once.
"""

from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import unquote

import httpx
from pydantic import BaseModel
import sentry_sdk

from app.logging_config import get_logger

MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


class ClientConfig(BaseModel):
    """Configuration for the API client.

    Cookie and header names must match the backend settings.
    """

    base_url: str = "http://localhost:5000"
    bootstrap_path: str = "/csrf-cookie"
    cookie_name: str = "XSRF-TOKEN"
    header_name: str = "X-XSRF-TOKEN"
    mismatch_status: int = 419
    timeout: float = 30


@dataclass
class TokenCache:
    """Priming state shared by every request of one client instance."""

    primed: bool = False


class TokenMismatchError(httpx.HTTPStatusError):
    """The server still rejected the request's CSRF token after one re-prime."""


class CsrfClient:
    """Async HTTP client that attaches and refreshes CSRF tokens.

    Request bodies must be replayable (bytes, str, dict or form data) since a
    mismatched request is sent a second time.
    """

    def __init__(
        self,
        config: ClientConfig,
        token_cache: Optional[TokenCache] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.token_cache = token_cache if token_cache is not None else TokenCache()
        self.logger = get_logger()
        self.client = httpx.AsyncClient(
            base_url=config.base_url,
            headers={"Accept": "application/json"},
            timeout=config.timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "CsrfClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self):
        """Close HTTP client."""
        await self.client.aclose()

    def read_token(self) -> Optional[str]:
        """Return the CSRF token currently held in the cookie jar."""
        value = self.client.cookies.get(self.config.cookie_name)
        return unquote(value) if value else None

    async def prime(self) -> None:
        """Call the bootstrap endpoint so the server sets the CSRF cookie.

        Raises:
            httpx.HTTPError: If the bootstrap request fails
        """
        try:
            response = await self.client.get(self.config.bootstrap_path)
            response.raise_for_status()
        except httpx.HTTPError as e:
            self.logger.error(f"CSRF bootstrap failed: {e}")
            sentry_sdk.capture_exception(e)
            raise

        self.token_cache.primed = True
        self.logger.debug(f"CSRF token primed from {self.config.bootstrap_path}")

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request, handling CSRF priming and one retry on mismatch.

        Args:
            method: HTTP method
            url: Path relative to the base URL, or an absolute URL
            **kwargs: Passed through to ``httpx.AsyncClient.request``

        Returns:
            The HTTP response; statuses other than the mismatch status are
            returned as-is

        Raises:
            TokenMismatchError: If the replayed request is rejected again
            httpx.HTTPError: On transport errors or a failed bootstrap
        """
        method = method.upper()
        if method not in MUTATING_METHODS:
            return await self.client.request(method, url, **kwargs)

        if not self.token_cache.primed:
            await self.prime()

        response = await self._send_with_token(method, url, kwargs)
        if response.status_code != self.config.mismatch_status:
            return response

        self.logger.warning(f"CSRF token mismatch on {method} {url}, re-priming and retrying once")
        self.token_cache.primed = False
        await self.prime()

        response = await self._send_with_token(method, url, kwargs)
        if response.status_code == self.config.mismatch_status:
            self.logger.error(f"CSRF token mismatch persisted on retry of {method} {url}")
            raise TokenMismatchError(
                f"CSRF token mismatch for {method} {response.request.url}",
                request=response.request,
                response=response,
            )
        return response

    async def _send_with_token(self, method: str, url: str, kwargs: dict) -> httpx.Response:
        headers = httpx.Headers(kwargs.get("headers"))
        if self.config.header_name not in headers:
            token = self.read_token()
            if token:
                headers[self.config.header_name] = token
        return await self.client.request(method, url, **{**kwargs, "headers": headers})

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def put(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PUT", url, **kwargs)

    async def patch(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PATCH", url, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("DELETE", url, **kwargs)
