"""
Consumer surface of the resource cache.

DataContext wires one session's store, orchestrator and lifecycle binding
together and exposes a ResourceView per resource:

    ctx = DataContext.create(session)
    await ctx.workers.fetch()
    ctx.workers.data       # normalized list, [] before the first fetch
    ctx.workers.loading
    ctx.workers.error
    ctx.orders.invalidate()  # also marks customers stale
    ctx.set_search_query("asha")
    ctx.workers.filtered   # workers matching the query

Views are reachable by snake_case attribute (``ctx.my_orders``) or by
resource name (``ctx["myOrders"]``).
"""

from __future__ import annotations

from typing import Any, Iterable

from stitch.auth.credentials import CredentialResolver
from stitch.auth.session import Session
from stitch.cache.store import ResourceCacheStore
from stitch.config import Settings, get_settings
from stitch.data.backend import BackendAPI
from stitch.exceptions import UnknownResourceError
from stitch.lifecycle import LifecycleBinding
from stitch.orchestrator import FetchOrchestrator
from stitch.resources import DISCRIMINATED_RESOURCES
from stitch.search import SearchFilter
from stitch.types import Clock, FetchResult, Resource, epoch_ms


class ResourceView:
    """Read accessors plus fetch/invalidate for one resource."""

    def __init__(self, context: DataContext, resource: Resource) -> None:
        self._context = context
        self.resource = resource
        self._spec = context.orchestrator.spec(resource)

    def __repr__(self) -> str:
        return f"ResourceView({self.resource.value!r}, loading={self.loading})"

    @property
    def data(self) -> Any:
        """Cached payload, or the resource's empty value; never None."""
        data = self._context.store.read(self.resource).data
        return self._spec.empty() if data is None else data

    @property
    def filtered(self) -> Any:
        """Data narrowed by the context's active search query."""
        return self._context.search.apply(self.resource, self.data)

    @property
    def loading(self) -> bool:
        return self._context.store.read(self.resource).loading

    @property
    def error(self) -> str | None:
        return self._context.store.read(self.resource).error

    @property
    def timestamp(self) -> int | None:
        return self._context.store.read(self.resource).timestamp

    def is_stale(self, discriminator: str | None = None) -> bool:
        return self._context.store.is_stale(self.resource, discriminator)

    async def fetch(self, force: bool = False, **args: Any) -> FetchResult:
        return await self._context.orchestrator.fetch(self.resource, force=force, **args)

    def invalidate(self) -> list[Resource]:
        return self._context.store.invalidate(self.resource)


class DataContext:
    """One session's cache, injected into whatever consumes it."""

    def __init__(
        self,
        store: ResourceCacheStore,
        orchestrator: FetchOrchestrator,
        binding: LifecycleBinding | None = None,
        owned_api: BackendAPI | None = None,
    ) -> None:
        self.store = store
        self.orchestrator = orchestrator
        self.binding = binding
        self._owned_api = owned_api
        self.search = SearchFilter()
        self._views = {resource: ResourceView(self, resource) for resource in Resource}

    @classmethod
    def create(
        cls,
        session: Session,
        api: Any | None = None,
        settings: Settings | None = None,
        clock: Clock = epoch_ms,
    ) -> DataContext:
        """Build a context for a session.

        Args:
            session: Session collaborator; its credential storage is used
                to resolve the bearer token and its logout clears the store.
            api: Backend API collaborator; a BackendAPI is created (and
                closed by aclose()) when None.
            settings: Settings for the TTL and the created BackendAPI;
                defaults to get_settings().
            clock: Epoch-millisecond clock for the store.
        """
        settings = settings or get_settings()
        owned_api = None
        if api is None:
            api = owned_api = BackendAPI(
                base_url=settings.api_url,
                timeout=settings.REQUEST_TIMEOUT_SECONDS,
                max_attempts=settings.REQUEST_MAX_ATTEMPTS,
            )

        store = ResourceCacheStore(
            ttl_ms=settings.cache_ttl_ms,
            clock=clock,
            discriminated=DISCRIMINATED_RESOURCES,
        )
        orchestrator = FetchOrchestrator(
            store=store,
            api=api,
            credentials=CredentialResolver(session.storage),
            session=session,
        )
        binding = LifecycleBinding(store, session)
        return cls(store, orchestrator, binding=binding, owned_api=owned_api)

    def view(self, resource: str | Resource) -> ResourceView:
        return self._views[Resource.parse(resource)]

    def __getitem__(self, resource: str | Resource) -> ResourceView:
        return self.view(resource)

    def __getattr__(self, name: str) -> ResourceView:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self.view(name)
        except UnknownResourceError:
            raise AttributeError(name) from None

    def invalidate(self, resources: str | Resource | Iterable[str | Resource]) -> list[Resource]:
        return self.store.invalidate(resources)

    def set_search_query(self, query: str | None) -> None:
        self.search.set_query(query)

    def clear_cache(self) -> None:
        self.store.clear()

    async def fetch_many(
        self, resources: Iterable[str | Resource], force: bool = False
    ) -> dict[Resource, FetchResult]:
        return await self.orchestrator.fetch_many(resources, force=force)

    async def refetch_all(self) -> dict[Resource, FetchResult]:
        return await self.orchestrator.refetch_all()

    async def aclose(self) -> None:
        """Stop background work, detach from the session and close the API."""
        await self.orchestrator.aclose()
        if self.binding is not None:
            self.binding.unbind()
        if self._owned_api is not None:
            await self._owned_api.close()
