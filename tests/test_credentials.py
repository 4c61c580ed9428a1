"""
Tests for credential storage and resolution.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from stitch.auth.credentials import (
    CredentialResolver,
    FileCredentialStorage,
    MemoryCredentialStorage,
)
from stitch.exceptions import CredentialError


class TestCredentialResolver:
    """Test the token fallback chain."""

    def test_direct_token_wins(self) -> None:
        storage = MemoryCredentialStorage({"token": "direct", "user": '{"jwt": "nested"}'})
        assert CredentialResolver(storage).resolve() == "direct"

    def test_falls_back_to_user_jwt(self) -> None:
        storage = MemoryCredentialStorage({"user": '{"jwt": "nested", "token": "old"}'})
        assert CredentialResolver(storage).resolve() == "nested"

    def test_falls_back_to_legacy_token_field(self) -> None:
        storage = MemoryCredentialStorage({"user": '{"name": "x", "token": "old"}'})
        assert CredentialResolver(storage).resolve() == "old"

    def test_nothing_stored(self) -> None:
        assert CredentialResolver(MemoryCredentialStorage()).resolve() is None

    def test_user_without_token(self) -> None:
        storage = MemoryCredentialStorage({"user": '{"name": "x"}'})
        assert CredentialResolver(storage).resolve() is None

    @pytest.mark.parametrize("record", ["{not json", '"just a string"', "[1, 2]"])
    def test_unparseable_user_record_resolves_to_none(self, record: str) -> None:
        """Test that parse errors are swallowed rather than raised."""
        storage = MemoryCredentialStorage({"user": record})
        assert CredentialResolver(storage).resolve() is None

    def test_empty_token_ignored(self) -> None:
        storage = MemoryCredentialStorage({"token": "", "user": '{"jwt": "nested"}'})
        assert CredentialResolver(storage).resolve() == "nested"

    def test_storage_error_resolves_to_none(self, temp_dir: Path) -> None:
        path = temp_dir / "credentials.json"
        path.write_text("garbage")
        assert CredentialResolver(FileCredentialStorage(path)).resolve() is None


class TestFileCredentialStorage:
    """Test the on-disk credential storage."""

    def test_round_trip_and_remove(self, temp_dir: Path) -> None:
        path = temp_dir / "nested" / "credentials.json"
        storage = FileCredentialStorage(path)

        storage.set("token", "abc")
        storage.set("user", '{"role": "owner"}')

        reopened = FileCredentialStorage(path)
        assert reopened.get("token") == "abc"
        assert reopened.get("user") == '{"role": "owner"}'

        reopened.remove("token")
        assert FileCredentialStorage(path).get("token") is None
        assert FileCredentialStorage(path).get("user") == '{"role": "owner"}'

    def test_missing_file_is_empty(self, temp_dir: Path) -> None:
        storage = FileCredentialStorage(temp_dir / "absent.json")
        assert storage.get("token") is None
        storage.remove("token")
        assert not (temp_dir / "absent.json").exists()

    def test_corrupt_file_raises(self, temp_dir: Path) -> None:
        path = temp_dir / "credentials.json"
        path.write_text("[1, 2, 3]")

        with pytest.raises(CredentialError) as exc_info:
            FileCredentialStorage(path).get("token")

        assert exc_info.value.context["path"] == str(path)
