"""
In-process resource cache store.

One CacheEntry per known resource. The store owns the staleness policy,
the in-flight flag used by the orchestrator's guard, invalidation with
declared cross-resource dependencies, and the session teardown reset.

All methods are synchronous: a mutation is visible to the next read before
the event loop can schedule anything else.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from stitch.logging import get_logger
from stitch.types import CacheEntry, Clock, FetchTicket, Resource, epoch_ms

logger = get_logger(__name__)

DEFAULT_TTL_MS = 5 * 60 * 1000

# Customer aggregates are computed from order data.
DEFAULT_DEPENDENCIES: dict[Resource, tuple[Resource, ...]] = {
    Resource.ORDERS: (Resource.CUSTOMERS,),
}

DEFAULT_DISCRIMINATED: frozenset[Resource] = frozenset({Resource.ALL_SHOPS})

ResourceName = str | Resource


class ResourceCacheStore:
    """Fixed mapping from resource to cache entry.

    Entries are never removed, only reset. Create one store per
    authenticated session and pass it to the consumers that need it.
    """

    def __init__(
        self,
        ttl_ms: int = DEFAULT_TTL_MS,
        clock: Clock = epoch_ms,
        dependencies: Mapping[Resource, Iterable[Resource]] | None = None,
        discriminated: Iterable[Resource] | None = None,
    ) -> None:
        """Initialize an empty store.

        Args:
            ttl_ms: Freshness window in milliseconds.
            clock: Callable returning the current epoch milliseconds.
            dependencies: Resources invalidated together with a key resource.
            discriminated: Resources whose staleness also depends on a
                discriminator value.
        """
        self.ttl_ms = ttl_ms
        self._clock = clock
        deps = DEFAULT_DEPENDENCIES if dependencies is None else dependencies
        self._dependencies = {key: tuple(value) for key, value in deps.items()}
        self._discriminated = frozenset(
            DEFAULT_DISCRIMINATED if discriminated is None else discriminated
        )
        self._entries: dict[Resource, CacheEntry] = {r: CacheEntry() for r in Resource}
        self._epoch = 0

    @property
    def epoch(self) -> int:
        """Number of times the store has been cleared."""
        return self._epoch

    def now(self) -> int:
        return self._clock()

    def _entry(self, name: ResourceName) -> CacheEntry:
        return self._entries[Resource.parse(name)]

    def is_discriminated(self, name: ResourceName) -> bool:
        return Resource.parse(name) in self._discriminated

    def is_stale(self, name: ResourceName, discriminator: str | None = None) -> bool:
        """Check whether a resource must be re-fetched.

        Args:
            name: Resource name.
            discriminator: Active discriminator for discriminated resources.
                Ignored when None or when the resource is not discriminated.

        Returns:
            True if never fetched, invalidated, older than the TTL, or the
            discriminator changed since the last successful fetch.
        """
        resource = Resource.parse(name)
        entry = self._entries[resource]
        if entry.timestamp is None:
            return True
        if self.now() - entry.timestamp > self.ttl_ms:
            return True
        if (
            discriminator is not None
            and resource in self._discriminated
            and discriminator != entry.discriminator
        ):
            return True
        return False

    def read(self, name: ResourceName) -> CacheEntry:
        """Return a snapshot copy of the entry. No side effects."""
        return self._entry(name).copy()

    def snapshot(self) -> dict[Resource, CacheEntry]:
        """Return snapshot copies of every entry."""
        return {resource: entry.copy() for resource, entry in self._entries.items()}

    def ticket(self, name: ResourceName) -> FetchTicket:
        return FetchTicket(epoch=self._epoch, generation=self._entry(name).generation)

    def commit_start(self, name: ResourceName) -> FetchTicket:
        """Mark a fetch as in flight.

        Idempotent. Callers must check ``loading`` first so that a second
        network call is never issued.

        Returns:
            Ticket to hand back to commit_success/commit_failure.
        """
        entry = self._entry(name)
        entry.loading = True
        entry.error = None
        return self.ticket(name)

    def _is_torn_down(self, ticket: FetchTicket | None) -> bool:
        return ticket is not None and ticket.epoch != self._epoch

    def commit_success(
        self,
        name: ResourceName,
        data: Any,
        discriminator: str | None = None,
        ticket: FetchTicket | None = None,
    ) -> None:
        """Store a fetched payload and mark it fresh.

        This is the only place the timestamp advances. A fetch that started
        before the most recent invalidation stores its data but stays stale;
        one that started before the last clear() is dropped.
        """
        resource = Resource.parse(name)
        entry = self._entries[resource]

        if self._is_torn_down(ticket):
            logger.debug("Dropping commit from cleared session", resource=resource.value)
            return

        entry.data = data
        entry.loading = False
        entry.error = None
        if discriminator is not None:
            entry.discriminator = discriminator

        if ticket is not None and ticket.generation != entry.generation:
            logger.debug(
                "Resource invalidated mid-flight, keeping it stale",
                resource=resource.value,
            )
            return

        entry.timestamp = self.now()

    def commit_failure(
        self,
        name: ResourceName,
        error: str,
        ticket: FetchTicket | None = None,
    ) -> None:
        """Record a failure; previously cached data and timestamp are kept."""
        if self._is_torn_down(ticket):
            return
        entry = self._entry(name)
        entry.loading = False
        entry.error = error

    def commit_enrichment(self, name: ResourceName, data: Any) -> None:
        """Replace the payload of an entry without starting a new fetch cycle."""
        self._entry(name).data = data

    def dependents(self, name: ResourceName) -> tuple[Resource, ...]:
        return self._dependencies.get(Resource.parse(name), ())

    def invalidate(self, names: ResourceName | Iterable[ResourceName]) -> list[Resource]:
        """Mark resources stale, keeping their data visible.

        Declared dependents are invalidated along with each named resource.

        Args:
            names: A single resource name or an iterable of names.

        Returns:
            The resources that were invalidated.
        """
        if isinstance(names, (str, Resource)):
            names = [names]

        invalidated: list[Resource] = []
        for name in names:
            resource = Resource.parse(name)
            for target in (resource, *self.dependents(resource)):
                if target in invalidated:
                    continue
                entry = self._entries[target]
                entry.timestamp = None
                entry.generation += 1
                invalidated.append(target)

        logger.debug(
            "Invalidated resources", resources=[r.value for r in invalidated]
        )
        return invalidated

    def clear(self) -> None:
        """Reset every entry to the empty initial state."""
        self._epoch += 1
        for resource, entry in self._entries.items():
            self._entries[resource] = CacheEntry(generation=entry.generation + 1)
        logger.info("Cleared resource cache", epoch=self._epoch)
