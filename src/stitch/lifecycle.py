"""Store teardown bound to the authentication session."""

from __future__ import annotations

from typing import Any, Callable

from stitch.auth.session import Session
from stitch.cache.store import ResourceCacheStore
from stitch.logging import get_logger

logger = get_logger(__name__)


class LifecycleBinding:
    """Clears the store whenever the session becomes unauthenticated.

    Binding to a session that is already logged out clears immediately,
    so a store never outlives the session it was created for.
    """

    def __init__(self, store: ResourceCacheStore, session: Session) -> None:
        self.store = store
        self.session = session
        self._authenticated = session.is_authenticated
        self._unsubscribe: Callable[[], None] | None = session.subscribe(self._on_change)
        if not self._authenticated:
            self.store.clear()

    @property
    def bound(self) -> bool:
        return self._unsubscribe is not None

    def _on_change(self, user: dict[str, Any] | None) -> None:
        authenticated = user is not None
        if self._authenticated and not authenticated:
            logger.info("Session ended, tearing down resource cache")
            self.store.clear()
        self._authenticated = authenticated

    def unbind(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
