"""
Tests for the session collaborator and store teardown.
"""

from __future__ import annotations

import orjson

from stitch.auth.credentials import MemoryCredentialStorage
from stitch.auth.session import Session
from stitch.cache.store import ResourceCacheStore
from stitch.lifecycle import LifecycleBinding


class TestSession:
    """Test login/logout/restore."""

    def test_login_normalizes_role_and_persists(self) -> None:
        storage = MemoryCredentialStorage()
        session = Session(storage)

        user = session.login({"id": 1, "role": "Owner"}, token="t0k")

        assert user["role"] == "owner"
        assert session.is_authenticated is True
        assert session.session_id is not None
        assert storage.get("token") == "t0k"
        assert orjson.loads(storage.get("user") or "{}")["role"] == "owner"

    def test_logout_removes_user_record(self) -> None:
        storage = MemoryCredentialStorage()
        session = Session(storage)
        session.login({"role": "worker"}, token="t0k")

        session.logout()

        assert session.user is None
        assert session.role is None
        assert storage.get("user") is None

    def test_restore_reads_persisted_user(self) -> None:
        storage = MemoryCredentialStorage({"user": '{"role": "customer", "jwt": "j"}'})
        session = Session(storage)

        assert session.restore() == {"role": "customer", "jwt": "j"}
        assert session.role == "customer"

    def test_restore_with_corrupt_record(self) -> None:
        session = Session(MemoryCredentialStorage({"user": "{oops"}))
        assert session.restore() is None
        assert session.is_authenticated is False

    def test_listeners_receive_transitions(self) -> None:
        session = Session(MemoryCredentialStorage())
        seen: list[object] = []
        unsubscribe = session.subscribe(seen.append)

        session.login({"role": "owner"})
        session.logout()
        unsubscribe()
        session.login({"role": "owner"})

        assert seen == [{"role": "owner"}, None]


class TestLifecycleBinding:
    """Test that logout tears the store down."""

    def test_logout_clears_store(self, store: ResourceCacheStore, session: Session) -> None:
        binding = LifecycleBinding(store, session)
        store.commit_success("workers", ["w"])

        session.logout()

        assert binding.bound is True
        assert store.read("workers").data is None
        assert store.is_stale("workers") is True

    def test_clear_runs_once_per_logout(
        self, store: ResourceCacheStore, session: Session
    ) -> None:
        LifecycleBinding(store, session)

        session.logout()
        epoch = store.epoch
        session.logout()

        assert store.epoch == epoch

    def test_relogin_does_not_clear(self, store: ResourceCacheStore, session: Session) -> None:
        LifecycleBinding(store, session)
        store.commit_success("workers", ["w"])

        session.login({"role": "owner"})

        assert store.read("workers").data == ["w"]

    def test_binding_while_logged_out_clears(self, store: ResourceCacheStore) -> None:
        store.commit_success("workers", ["w"])

        LifecycleBinding(store, Session(MemoryCredentialStorage()))

        assert store.read("workers").data is None

    def test_unbind_stops_teardown(self, store: ResourceCacheStore, session: Session) -> None:
        binding = LifecycleBinding(store, session)
        binding.unbind()
        store.commit_success("workers", ["w"])

        session.logout()

        assert binding.bound is False
        assert store.read("workers").data == ["w"]
