"""
Smart Stitch Backend API client.

One coroutine per resource, each returning an ApiResult instead of raising.
Sends the bearer token on every call and retries transient transport
errors with tenacity. The cache layer only relies on the ApiResult
contract; anything exposing the same coroutines can replace this client.
"""

from __future__ import annotations

from typing import Any

import httpx
import orjson
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from stitch.config import get_settings
from stitch.logging import get_logger
from stitch.types import ApiResult

logger = get_logger(__name__)

SERVER_ERROR_MESSAGE = "Server error. Please try again later."


class BackendAPI:
    """Async client for the Smart Stitch REST API."""

    def __init__(
        self,
        base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
        max_attempts: int | None = None,
        retry_wait: float = 1.0,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: API base URL. If None, reads API_URL from settings.
            client: Pre-built HTTP client (tests, connection sharing). The
                client is closed by close() only if created here.
            timeout: Request timeout in seconds; defaults from settings.
            max_attempts: Attempts per call on transport errors.
            retry_wait: Multiplier for exponential backoff between attempts.
        """
        settings = get_settings()
        self.base_url = (base_url or settings.api_url).rstrip("/")
        self.timeout = timeout or settings.REQUEST_TIMEOUT_SECONDS
        self.max_attempts = max_attempts or settings.REQUEST_MAX_ATTEMPTS
        self.retry_wait = retry_wait
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"Accept": "application/json"},
            )
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> BackendAPI:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _send(
        self,
        path: str,
        token: str,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        client = await self._get_client()
        url = f"{self.base_url}{path}"
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(httpx.TransportError),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.retry_wait, max=10),
            reraise=True,
        ):
            with attempt:
                return await client.get(
                    url,
                    params=params,
                    headers={"Authorization": f"Bearer {token}"},
                )
        raise AssertionError("unreachable")

    async def _get(
        self,
        path: str,
        token: str,
        failure_message: str,
        params: dict[str, Any] | None = None,
    ) -> ApiResult:
        """GET a resource and map the response onto an ApiResult.

        Args:
            path: Path below the base URL.
            token: Bearer token.
            failure_message: Error used when the body carries no message.
            params: Optional query parameters.

        Returns:
            ApiResult with the body unwrapped from a {"data": ...} envelope.
        """
        try:
            response = await self._send(path, token, params)
        except httpx.HTTPError as e:
            logger.warning("Backend request failed", path=path, error=str(e))
            return ApiResult.fail(str(e) or SERVER_ERROR_MESSAGE)

        try:
            body = orjson.loads(response.content) if response.content else None
        except orjson.JSONDecodeError:
            body = None

        if not response.is_success:
            message = None
            if isinstance(body, dict):
                message = body.get("message") or body.get("error")
            logger.warning(
                "Backend returned error status",
                path=path,
                status_code=response.status_code,
            )
            return ApiResult.fail(
                str(message or failure_message), status_code=response.status_code
            )

        if isinstance(body, dict) and body.get("data"):
            body = body["data"]
        return ApiResult.ok(body, status_code=response.status_code)

    async def get_customers(self, token: str) -> ApiResult:
        return await self._get("/api/customers", token, "Failed to fetch customers")

    async def get_orders(self, token: str) -> ApiResult:
        return await self._get("/api/orders", token, "Failed to fetch orders")

    async def get_workers(self, token: str) -> ApiResult:
        return await self._get("/api/workers", token, "Failed to fetch workers")

    async def get_my_tasks(self, token: str) -> ApiResult:
        return await self._get("/api/workers/me/tasks", token, "Failed to fetch tasks")

    async def get_customer_profile(self, token: str) -> ApiResult:
        return await self._get("/api/customers/me", token, "Failed to fetch profile")

    async def get_worker_profile(self, token: str) -> ApiResult:
        return await self._get("/api/workers/me", token, "Failed to fetch profile")

    async def get_my_orders(self, token: str) -> ApiResult:
        return await self._get("/api/customers/me/orders", token, "Failed to fetch orders")

    async def get_customer_stats(self, token: str) -> ApiResult:
        return await self._get("/api/customers/me/stats", token, "Failed to fetch stats")

    async def get_recent_activities(self, token: str, limit: int = 5) -> ApiResult:
        return await self._get(
            "/api/customers/me/activities",
            token,
            "Failed to fetch activities",
            params={"limit": limit},
        )

    async def get_measurement_profiles(self, customer_id: Any, token: str) -> ApiResult:
        return await self._get(
            f"/api/customers/{customer_id}/measurement-profiles",
            token,
            "Failed to fetch measurement profiles",
        )

    async def get_admin_dashboard(self, token: str) -> ApiResult:
        return await self._get(
            "/api/admin/dashboard", token, "Failed to fetch dashboard"
        )

    async def get_shop_analytics(self, token: str) -> ApiResult:
        return await self._get(
            "/api/owner/analytics", token, "Failed to fetch shop analytics"
        )

    async def get_all_shops(self, token: str, search_query: str = "") -> ApiResult:
        params = {"search": search_query} if search_query else None
        return await self._get("/api/admin/shops", token, "Failed to fetch shops", params)

    async def get_platform_analytics(self, token: str) -> ApiResult:
        return await self._get(
            "/api/admin/analytics", token, "Failed to fetch platform analytics"
        )
