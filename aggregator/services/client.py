"""
DownstreamClient - Async HTTP client for peer services.

Combines:
- A registry of named ServiceEndpoints (base URL + timeout)
- Classification of every response into a CallOutcome
- RetryPolicy for transient failures

The bearer token is forwarded as-is on every call and never stored.
"""

from dataclasses import dataclass
from typing import Any, Callable

import httpx
from loguru import logger

from aggregator.services.errors import UnknownEndpointError
from aggregator.services.outcome import CallOutcome, Failure, FailureKind, Success
from aggregator.services.retry import RetryPolicy

Decoder = Callable[[Any], Any]


@dataclass(frozen=True)
class ServiceEndpoint:
    """A named peer service."""

    name: str
    base_url: str
    timeout: float = 30.0

    def url_for(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"


def classify_status(status_code: int, body: str = "") -> Failure:
    """Map a non-2xx status code to a Failure."""
    detail = body[:200]
    if status_code == 429:
        return Failure(FailureKind.RATE_LIMITED, detail, status_code)
    if status_code >= 500:
        return Failure(FailureKind.SERVER_ERROR, detail, status_code)
    return Failure(FailureKind.CLIENT_ERROR, detail, status_code)


class DownstreamClient:
    """
    HTTP client returning CallOutcome values instead of raising.

    Usage:
        client = DownstreamClient(retry=RetryPolicy(max_retries=3))
        client.register_endpoint(ServiceEndpoint("content", "http://content-api"))

        outcome = await client.call_with_retry(
            "content", "/api/posts/user/42", auth_token=token
        )
        if isinstance(outcome, Success):
            posts = outcome.payload
    """

    def __init__(
        self,
        endpoints: dict[str, ServiceEndpoint] | None = None,
        retry: RetryPolicy | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._endpoints: dict[str, ServiceEndpoint] = dict(endpoints or {})
        self._retry = retry or RetryPolicy()
        self._transport = transport

        # HTTP client (lazy initialization)
        self._http_client: httpx.AsyncClient | None = None

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry

    def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                transport=self._transport,
                follow_redirects=True,
            )
        return self._http_client

    def register_endpoint(self, endpoint: ServiceEndpoint) -> None:
        """Register a downstream endpoint."""
        self._endpoints[endpoint.name] = endpoint
        logger.debug(f"Registered endpoint: {endpoint.name} -> {endpoint.base_url}")

    def get_endpoint(self, name: str) -> ServiceEndpoint:
        """Look up a registered endpoint by name."""
        try:
            return self._endpoints[name]
        except KeyError:
            raise UnknownEndpointError(name) from None

    async def call(
        self,
        endpoint: ServiceEndpoint | str,
        path: str,
        auth_token: str | None = None,
        params: dict[str, Any] | None = None,
        decode: Decoder | None = None,
    ) -> CallOutcome:
        """
        Make a single GET request to a downstream service.

        Args:
            endpoint: Endpoint or registered endpoint name
            path: Request path relative to the endpoint base URL
            auth_token: Bearer token to forward (not inspected)
            params: Query parameters
            decode: Converts the parsed JSON body into the expected shape;
                raising ValueError marks the response undecodable

        Returns:
            Success with the decoded payload, or a classified Failure
        """
        if isinstance(endpoint, str):
            endpoint = self.get_endpoint(endpoint)

        headers = {"Accept": "application/json"}
        if auth_token:
            headers["Authorization"] = f"Bearer {auth_token}"

        client = self._get_http_client()
        url = endpoint.url_for(path)

        try:
            response = await client.get(
                url,
                params=params,
                headers=headers,
                timeout=endpoint.timeout,
            )
        except httpx.TimeoutException as e:
            return Failure(
                FailureKind.TIMEOUT,
                f"{endpoint.name} timed out after {endpoint.timeout}s ({type(e).__name__})",
            )
        except httpx.RequestError as e:
            return Failure(FailureKind.CONNECTION_ERROR, f"{type(e).__name__}: {e}")

        if not response.is_success:
            return classify_status(response.status_code, response.text)

        try:
            data = response.json()
            payload = decode(data) if decode else data
        except ValueError as e:
            return Failure(FailureKind.DECODE_ERROR, str(e)[:200])

        return Success(payload)

    async def call_with_retry(
        self,
        endpoint: ServiceEndpoint | str,
        path: str,
        auth_token: str | None = None,
        params: dict[str, Any] | None = None,
        decode: Decoder | None = None,
    ) -> CallOutcome:
        """Same as call(), wrapped in the client's RetryPolicy."""
        if isinstance(endpoint, str):
            endpoint = self.get_endpoint(endpoint)

        async def attempt() -> CallOutcome:
            return await self.call(endpoint, path, auth_token, params, decode)

        return await self._retry.run(attempt, label=f"{endpoint.name} {path}")

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
        logger.debug("DownstreamClient closed")

    async def __aenter__(self) -> "DownstreamClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()
