"""
Fetch orchestration over the resource cache store.

Every resource goes through the same procedure:

1. fresh cache entry and no force -> cached data, no network call
2. fetch already in flight -> "Request in progress", no network call
3. no credential (or a missing required argument) -> "Authentication required"
4. commit_start, await the Backend API, normalize, commit the outcome

Steps 1-4 up to commit_start run without yielding to the event loop, which
is what makes the in-flight guard safe on a single-threaded scheduler. A
multi-threaded port would need a per-resource lock here instead.

After customers are committed, a detached task fetches orders through the
same path and fills in per-customer aggregates. The primary result never
waits for it, and its failures are only logged.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Coroutine, Iterable

from stitch.auth.credentials import CredentialResolver
from stitch.auth.session import Session
from stitch.cache.store import ResourceCacheStore
from stitch.exceptions import AUTH_REQUIRED_MESSAGE, REQUEST_IN_PROGRESS_MESSAGE
from stitch.logging import get_logger, log_context
from stitch.normalize import aggregate_order_stats, apply_customer_stats
from stitch.resources import REFETCH_ALL, RESOURCE_SPECS, ResourceSpec
from stitch.types import ErrorKind, FetchResult, Resource

logger = get_logger(__name__)

Enricher = Callable[[Any, int], Awaitable[None]]


class FetchOrchestrator:
    """Runs cache-aware fetches for every registered resource."""

    def __init__(
        self,
        store: ResourceCacheStore,
        api: Any,
        credentials: CredentialResolver,
        session: Session | None = None,
        specs: dict[Resource, ResourceSpec] | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            store: Cache store for this session.
            api: Backend API collaborator (see stitch.data.backend).
            credentials: Resolver for the bearer token.
            session: Session collaborator; required by resources that need
                the authenticated user (profile).
            specs: Resource registry; defaults to RESOURCE_SPECS.
        """
        self.store = store
        self.api = api
        self.credentials = credentials
        self.session = session
        self.specs = specs or RESOURCE_SPECS
        self._background: set[asyncio.Task[None]] = set()
        self._enrichers: dict[Resource, Enricher] = {
            Resource.CUSTOMERS: self._enrich_customers,
        }

    def spec(self, resource: str | Resource) -> ResourceSpec:
        return self.specs[Resource.parse(resource)]

    @property
    def pending_background(self) -> int:
        """Number of enrichment tasks still running."""
        return len(self._background)

    async def fetch(
        self,
        resource: str | Resource,
        *,
        force: bool = False,
        **args: Any,
    ) -> FetchResult:
        """Fetch a resource through the cache.

        Args:
            resource: Resource name.
            force: Ignore freshness and always call the backend.
            **args: Resource arguments (e.g. limit, customer_id, search_query).

        Returns:
            FetchResult; failures are reported, never raised.
        """
        spec = self.spec(resource)
        resource = spec.resource
        args = spec.bind_args(args)
        discriminator = spec.discriminator(args)

        with log_context(resource=resource.value):
            entry = self.store.read(resource)

            if not force and not self.store.is_stale(resource, discriminator):
                logger.debug("Cache hit")
                return FetchResult(
                    success=True, data=entry.data, from_cache=True, resource=resource
                )

            if entry.loading:
                logger.debug("Fetch already in flight, rejecting duplicate")
                return FetchResult(
                    success=False,
                    error=REQUEST_IN_PROGRESS_MESSAGE,
                    from_cache=False,
                    error_kind=ErrorKind.REQUEST_IN_PROGRESS,
                    resource=resource,
                )

            token = self.credentials.resolve()
            missing = self._missing_requirements(spec, args)
            if not token or missing:
                logger.warning(
                    "Cannot fetch without credentials",
                    has_token=bool(token),
                    missing=missing,
                )
                self.store.commit_failure(resource, AUTH_REQUIRED_MESSAGE)
                return FetchResult(
                    success=False,
                    error=AUTH_REQUIRED_MESSAGE,
                    error_kind=ErrorKind.AUTH_REQUIRED,
                    resource=resource,
                    context={"missing": missing} if missing else {},
                )

            if spec.needs_user and self.session is not None:
                args["role"] = self.session.role

            ticket = self.store.commit_start(resource)
            logger.debug("Cache miss, calling backend", force=force)

            try:
                result = await spec.call(self.api, token, args)
                normalized = spec.normalize(result.data) if result.success else None
            except asyncio.CancelledError:
                self.store.commit_failure(resource, "Request cancelled", ticket)
                raise
            except Exception as e:
                message = str(e) or spec.failure_message
                logger.error("Fetch raised", error=message, exc_info=True)
                self.store.commit_failure(resource, message, ticket)
                return self._backend_failure(resource, message)

            if not result.success:
                message = result.error or spec.failure_message
                logger.warning(
                    "Backend reported failure", error=message, status_code=result.status_code
                )
                self.store.commit_failure(resource, message, ticket)
                return self._backend_failure(resource, message, result.status_code)

            self.store.commit_success(resource, normalized, discriminator, ticket)
            logger.info("Fetched resource")

            enricher = self._enrichers.get(resource)
            if enricher is not None:
                self._spawn(
                    enricher(normalized, self.store.epoch),
                    name=f"enrich-{resource.value}",
                )

            return FetchResult(
                success=True, data=normalized, from_cache=False, resource=resource
            )

    def _missing_requirements(self, spec: ResourceSpec, args: dict[str, Any]) -> list[str]:
        missing = spec.missing_args(args)
        if spec.needs_user and (self.session is None or not self.session.is_authenticated):
            missing.append("user")
        return missing

    @staticmethod
    def _backend_failure(
        resource: Resource, message: str, status_code: int | None = None
    ) -> FetchResult:
        return FetchResult(
            success=False,
            error=message,
            error_kind=ErrorKind.BACKEND,
            resource=resource,
            context={"status_code": status_code} if status_code is not None else {},
        )

    async def fetch_many(
        self,
        resources: Iterable[str | Resource],
        force: bool = False,
    ) -> dict[Resource, FetchResult]:
        """Fetch several resources concurrently with their default arguments."""
        targets = [Resource.parse(r) for r in resources]
        results = await asyncio.gather(*(self.fetch(r, force=force) for r in targets))
        return dict(zip(targets, results))

    async def refetch_all(self) -> dict[Resource, FetchResult]:
        """Force a refresh of the commonly displayed resources."""
        return await self.fetch_many(REFETCH_ALL, force=True)

    def _spawn(self, coro: Coroutine[Any, Any, None], name: str) -> None:
        task = asyncio.create_task(coro, name=name)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _enrich_customers(self, customers: list[dict[str, Any]], epoch: int) -> None:
        """Fill customer order counts and totals from the orders resource.

        ``epoch`` is the store epoch the customers were committed under; the
        task does nothing once the store has been cleared since then.
        """
        with log_context(resource=Resource.CUSTOMERS.value):
            try:
                if self.store.epoch != epoch:
                    logger.debug("Store cleared before enrichment, skipping")
                    return

                orders = await self.fetch(Resource.ORDERS)
                if self.store.epoch != epoch:
                    logger.debug("Store cleared during enrichment, skipping")
                    return
                if not orders.success or orders.data is None:
                    logger.debug("Skipping customer enrichment", reason=orders.error)
                    return

                if self.store.read(Resource.CUSTOMERS).data is not customers:
                    logger.debug("Customers replaced before enrichment, skipping")
                    return

                stats = aggregate_order_stats(orders.data)
                self.store.commit_enrichment(
                    Resource.CUSTOMERS, apply_customer_stats(customers, stats)
                )
                logger.debug("Enriched customers", customers_with_orders=len(stats))
            except Exception:
                logger.exception("Customer enrichment failed")

    async def wait_for_background(self) -> None:
        """Wait until all enrichment tasks (including ones they spawn) finish."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel pending enrichment tasks."""
        tasks = list(self._background)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._background.clear()
