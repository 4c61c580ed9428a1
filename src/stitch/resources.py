"""
Resource registry.

Describes every cached resource once: which Backend API coroutine loads
it, how its payload is normalized, what an empty value looks like to
consumers, which arguments it takes and which of them is a discriminator.
The orchestrator and the consumer surface are driven entirely by this
table.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from stitch.normalize import identity, normalize_customers, normalize_orders, normalize_workers
from stitch.types import ApiResult, Resource

UNSUPPORTED_ROLE_MESSAGE = "Profile fetch not implemented for this role"

CUSTOMER_ROLES = frozenset({"customer"})
WORKER_ROLES = frozenset({"worker", "tailor"})

BackendCall = Callable[[Any, str, dict[str, Any]], Awaitable[ApiResult]]


@dataclass(frozen=True)
class ResourceSpec:
    """How one resource is fetched, normalized and presented.

    Attributes:
        resource: The resource this spec describes.
        call: Coroutine function ``(api, token, args) -> ApiResult``.
        normalize: Converts a raw payload into the canonical shape.
        empty: Factory for the value consumers see before the first fetch.
        defaults: Default values for the resource's arguments.
        required_args: Arguments that must be truthy before fetching.
        discriminator_arg: Argument whose value participates in staleness.
        needs_user: Whether an authenticated session user is required.
        failure_message: Error used when the call raises without a message.
    """

    resource: Resource
    call: BackendCall
    normalize: Callable[[Any], Any] = identity
    empty: Callable[[], Any] = list
    defaults: dict[str, Any] = field(default_factory=dict)
    required_args: tuple[str, ...] = ()
    discriminator_arg: str | None = None
    needs_user: bool = False
    failure_message: str = "Failed to fetch data"

    def bind_args(self, args: dict[str, Any]) -> dict[str, Any]:
        """Merge caller arguments over the defaults."""
        return {**self.defaults, **args}

    def discriminator(self, args: dict[str, Any]) -> str | None:
        if self.discriminator_arg is None:
            return None
        value = args.get(self.discriminator_arg)
        return "" if value is None else str(value)

    def missing_args(self, args: dict[str, Any]) -> list[str]:
        return [name for name in self.required_args if not args.get(name)]


async def _fetch_profile(api: Any, token: str, args: dict[str, Any]) -> ApiResult:
    role = args.get("role")
    if role in CUSTOMER_ROLES:
        return await api.get_customer_profile(token)
    if role in WORKER_ROLES:
        return await api.get_worker_profile(token)
    return ApiResult.fail(UNSUPPORTED_ROLE_MESSAGE)


RESOURCE_SPECS: dict[Resource, ResourceSpec] = {
    spec.resource: spec
    for spec in (
        ResourceSpec(
            Resource.CUSTOMERS,
            call=lambda api, token, args: api.get_customers(token),
            normalize=normalize_customers,
            failure_message="Failed to fetch customers",
        ),
        ResourceSpec(
            Resource.ORDERS,
            call=lambda api, token, args: api.get_orders(token),
            normalize=normalize_orders,
            failure_message="Failed to fetch orders",
        ),
        ResourceSpec(
            Resource.WORKERS,
            call=lambda api, token, args: api.get_workers(token),
            normalize=normalize_workers,
            failure_message="Failed to fetch workers",
        ),
        ResourceSpec(
            Resource.TASKS,
            call=lambda api, token, args: api.get_my_tasks(token),
            failure_message="Failed to fetch tasks",
        ),
        ResourceSpec(
            Resource.PROFILE,
            call=_fetch_profile,
            empty=dict,
            needs_user=True,
            failure_message="Failed to fetch profile",
        ),
        ResourceSpec(
            Resource.MY_ORDERS,
            call=lambda api, token, args: api.get_my_orders(token),
            failure_message="Failed to fetch orders",
        ),
        ResourceSpec(
            Resource.CUSTOMER_STATS,
            call=lambda api, token, args: api.get_customer_stats(token),
            empty=dict,
            failure_message="Failed to fetch stats",
        ),
        ResourceSpec(
            Resource.RECENT_ACTIVITIES,
            call=lambda api, token, args: api.get_recent_activities(token, args["limit"]),
            defaults={"limit": 5},
            failure_message="Failed to fetch activities",
        ),
        ResourceSpec(
            Resource.MEASUREMENT_PROFILES,
            call=lambda api, token, args: api.get_measurement_profiles(
                args["customer_id"], token
            ),
            required_args=("customer_id",),
            failure_message="Failed to fetch measurement profiles",
        ),
        ResourceSpec(
            Resource.ADMIN_DASHBOARD,
            call=lambda api, token, args: api.get_admin_dashboard(token),
            empty=dict,
            failure_message="Failed to fetch dashboard",
        ),
        ResourceSpec(
            Resource.SHOP_ANALYTICS,
            call=lambda api, token, args: api.get_shop_analytics(token),
            empty=dict,
            failure_message="Failed to fetch shop analytics",
        ),
        ResourceSpec(
            Resource.ALL_SHOPS,
            call=lambda api, token, args: api.get_all_shops(token, args["search_query"]),
            defaults={"search_query": ""},
            discriminator_arg="search_query",
            failure_message="Failed to fetch shops",
        ),
        ResourceSpec(
            Resource.PLATFORM_ANALYTICS,
            call=lambda api, token, args: api.get_platform_analytics(token),
            empty=dict,
            failure_message="Failed to fetch platform analytics",
        ),
    )
}

DISCRIMINATED_RESOURCES = frozenset(
    spec.resource for spec in RESOURCE_SPECS.values() if spec.discriminator_arg
)

# Forced by refetch_all(); the argument-bound resources are left to callers.
REFETCH_ALL: tuple[Resource, ...] = (
    Resource.CUSTOMERS,
    Resource.ORDERS,
    Resource.WORKERS,
    Resource.TASKS,
    Resource.PROFILE,
    Resource.MY_ORDERS,
    Resource.CUSTOMER_STATS,
    Resource.RECENT_ACTIVITIES,
)


def get_spec(resource: str | Resource) -> ResourceSpec:
    return RESOURCE_SPECS[Resource.parse(resource)]
