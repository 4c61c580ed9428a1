"""
Bearer credential resolution.

The resolver reads from a small key/value credential storage: a directly
stored token first, then the token field of the stored user record.
Resolution never raises; callers treat None as "authentication required".
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

import orjson

from stitch.exceptions import CredentialError
from stitch.logging import get_logger

logger = get_logger(__name__)

TOKEN_KEY = "token"
USER_KEY = "user"

# Checked in order; older sessions stored the token as "token".
USER_TOKEN_FIELDS = ("jwt", "token")


class CredentialStorage(ABC):
    """Abstract key/value storage for session credentials."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Get a stored string value."""
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store a string value."""
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        """Remove a value if present."""
        ...


class MemoryCredentialStorage(CredentialStorage):
    """Dict-backed storage for tests and embedding."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def remove(self, key: str) -> None:
        self._values.pop(key, None)


class FileCredentialStorage(CredentialStorage):
    """JSON document on disk holding string values by key.

    The file is rewritten on every change.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            raw = orjson.loads(self.path.read_bytes())
        except (OSError, orjson.JSONDecodeError) as e:
            raise CredentialError(
                "Failed to read credential storage",
                context={"path": str(self.path), "error": str(e)},
            ) from e
        if not isinstance(raw, dict):
            raise CredentialError(
                "Credential storage is not a JSON object",
                context={"path": str(self.path)},
            )
        return {str(k): v for k, v in raw.items() if isinstance(v, str)}

    def _save(self, values: dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_bytes(orjson.dumps(values, option=orjson.OPT_INDENT_2))
        except OSError as e:
            raise CredentialError(
                "Failed to write credential storage",
                context={"path": str(self.path), "error": str(e)},
            ) from e

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        values = self._load()
        values[key] = value
        self._save(values)

    def remove(self, key: str) -> None:
        values = self._load()
        if values.pop(key, None) is not None:
            self._save(values)


class CredentialResolver:
    """Resolves the bearer token for Backend API calls."""

    def __init__(self, storage: CredentialStorage) -> None:
        self.storage = storage

    def resolve(self) -> str | None:
        """Resolve the bearer token.

        Returns:
            The stored token, else the token field of the stored user
            record, else None. Storage and parse errors are logged and
            resolve to None.
        """
        try:
            token = self.storage.get(TOKEN_KEY)
            if token:
                return token
            user_record = self.storage.get(USER_KEY)
        except CredentialError as e:
            logger.error("Error reading credential storage", error=str(e))
            return None

        if not user_record:
            return None

        try:
            user_data = orjson.loads(user_record)
        except orjson.JSONDecodeError as e:
            logger.error("Error parsing stored user record", error=str(e))
            return None

        if not isinstance(user_data, dict):
            logger.error("Stored user record is not an object")
            return None

        for field_name in USER_TOKEN_FIELDS:
            value = user_data.get(field_name)
            if value:
                return str(value)
        return None
