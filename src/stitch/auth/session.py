"""
Authenticated session state.

Holds the current user record and notifies subscribers on every change.
Login persists the user and token into the credential storage so the
CredentialResolver can find them; logout removes the user record.
"""

from __future__ import annotations

from typing import Any, Callable

import orjson

from stitch.auth.credentials import TOKEN_KEY, USER_KEY, CredentialStorage
from stitch.exceptions import CredentialError
from stitch.logging import get_logger, set_session_id
from stitch.types import generate_id

logger = get_logger(__name__)

SessionListener = Callable[[dict[str, Any] | None], None]


class Session:
    """Current authenticated user, or None when logged out."""

    def __init__(self, storage: CredentialStorage) -> None:
        self.storage = storage
        self._user: dict[str, Any] | None = None
        self._listeners: list[SessionListener] = []
        self.session_id: str | None = None

    @property
    def user(self) -> dict[str, Any] | None:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None

    @property
    def role(self) -> str | None:
        if self._user is None:
            return None
        role = self._user.get("role")
        return str(role).lower() if role else None

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener called with the new user on every change.

        Returns:
            A callable that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_user(self, user: dict[str, Any] | None) -> None:
        self._user = user
        for listener in list(self._listeners):
            listener(user)

    def restore(self) -> dict[str, Any] | None:
        """Load a previously persisted user record, if any."""
        try:
            raw = self.storage.get(USER_KEY)
        except CredentialError as e:
            logger.error("Error reading stored session", error=str(e))
            raw = None

        user: dict[str, Any] | None = None
        if raw:
            try:
                parsed = orjson.loads(raw)
            except orjson.JSONDecodeError as e:
                logger.error("Error parsing stored session", error=str(e))
            else:
                if isinstance(parsed, dict):
                    user = parsed

        if user is not None:
            self._start_session()
        self._set_user(user)
        return user

    def login(self, user_data: dict[str, Any], token: str | None = None) -> dict[str, Any]:
        """Start a session for a user returned by the auth endpoint.

        Args:
            user_data: User record; must contain a role.
            token: Bearer token to persist, if issued.

        Returns:
            The normalized user record (role lower-cased).
        """
        normalized = {**user_data, "role": str(user_data["role"]).lower()}
        self.storage.set(USER_KEY, orjson.dumps(normalized).decode())
        if token:
            self.storage.set(TOKEN_KEY, token)
        self._start_session()
        logger.info("Session started", role=normalized["role"])
        self._set_user(normalized)
        return normalized

    def logout(self) -> None:
        """End the session and forget the stored user record."""
        self.storage.remove(USER_KEY)
        logger.info("Session ended")
        self._set_user(None)
        self.session_id = None
        set_session_id(None)

    def _start_session(self) -> None:
        self.session_id = generate_id("sess")
        set_session_id(self.session_id)
