"""
Core types for the resource cache.

This module defines the fundamental data structures used throughout the system:
- The closed Resource enumeration
- CacheEntry, the mutable per-resource cache slot
- Frozen result dataclasses (ApiResult, FetchResult, FetchTicket)
- Helper functions for IDs and timestamps
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable

from stitch.exceptions import (
    AuthRequiredError,
    BackendError,
    RequestInProgressError,
    UnknownResourceError,
)

Clock = Callable[[], int]


def epoch_ms() -> int:
    """Get the current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def generate_id(prefix: str = "") -> str:
    """Generate a unique ID, optionally prefixed (e.g., "sess")."""
    uid = uuid.uuid4().hex
    return f"{prefix}_{uid}" if prefix else uid


class Resource(str, Enum):
    """Independently cached data sets exposed by the backend."""

    CUSTOMERS = "customers"
    ORDERS = "orders"
    WORKERS = "workers"
    TASKS = "tasks"
    PROFILE = "profile"
    MY_ORDERS = "myOrders"
    CUSTOMER_STATS = "customerStats"
    RECENT_ACTIVITIES = "recentActivities"
    MEASUREMENT_PROFILES = "measurementProfiles"
    ADMIN_DASHBOARD = "adminDashboard"
    SHOP_ANALYTICS = "shopAnalytics"
    ALL_SHOPS = "allShops"
    PLATFORM_ANALYTICS = "platformAnalytics"

    @classmethod
    def parse(cls, name: str | Resource) -> Resource:
        """Resolve a resource from its value or member name.

        Raises:
            UnknownResourceError: If the name is not a known resource.
        """
        if isinstance(name, Resource):
            return name
        try:
            return cls(name)
        except ValueError:
            pass
        try:
            return cls[name.upper()]
        except KeyError:
            raise UnknownResourceError(
                f"Unknown resource: {name}", context={"resource": name}
            ) from None


class ErrorKind(str, Enum):
    """Classification of a failed fetch."""

    AUTH_REQUIRED = "auth_required"
    REQUEST_IN_PROGRESS = "request_in_progress"
    BACKEND = "backend"


@dataclass
class CacheEntry:
    """Mutable cache slot for one resource.

    ``timestamp`` is epoch milliseconds of the last successful fetch; None
    means never fetched (or invalidated) and is always stale.
    """

    data: Any = None
    loading: bool = False
    error: str | None = None
    timestamp: int | None = None
    discriminator: str | None = None
    generation: int = 0

    def copy(self) -> CacheEntry:
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "data": self.data,
            "loading": self.loading,
            "error": self.error,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class FetchTicket:
    """Identifies the store epoch and entry generation a fetch started in."""

    epoch: int
    generation: int


@dataclass(frozen=True)
class ApiResult:
    """Result contract of every Backend API call."""

    success: bool
    data: Any = None
    error: str | None = None
    status_code: int | None = None

    @classmethod
    def ok(cls, data: Any, status_code: int | None = None) -> ApiResult:
        return cls(success=True, data=data, status_code=status_code)

    @classmethod
    def fail(cls, error: str, status_code: int | None = None) -> ApiResult:
        return cls(success=False, error=error, status_code=status_code)


@dataclass(frozen=True)
class FetchResult:
    """Outcome of an orchestrated fetch, returned instead of raising."""

    success: bool
    data: Any = None
    error: str | None = None
    from_cache: bool = False
    error_kind: ErrorKind | None = None
    resource: Resource | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def raise_for_error(self) -> FetchResult:
        """Raise the matching FetchError subclass if the fetch failed.

        Returns:
            self, so calls can be chained on success.
        """
        if self.success:
            return self
        context = {"resource": self.resource.value if self.resource else None}
        context.update(self.context)
        if self.error_kind is ErrorKind.AUTH_REQUIRED:
            raise AuthRequiredError(self.error or AuthRequiredError().message, context)
        if self.error_kind is ErrorKind.REQUEST_IN_PROGRESS:
            raise RequestInProgressError(
                self.error or RequestInProgressError().message, context
            )
        raise BackendError(self.error or "Backend request failed", context)
