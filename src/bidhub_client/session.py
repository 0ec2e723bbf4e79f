"""
Session Store Adapter.

Owns the persisted session (``token``, ``role``, ``user`` keys). All writes go
through ``save``/``clear``; readers either call ``load`` or ``subscribe`` to be
told about changes made in this context or in any other context sharing the
same storage.
"""

from __future__ import annotations

import contextlib
import hashlib
import json
import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from bidhub_client.exceptions import StorageUnavailableError
from bidhub_client.schemas import Role, Session, UserSummary

if TYPE_CHECKING:
    from bidhub_client.storage import Storage, StorageEvent

logger = logging.getLogger(__name__)

TOKEN_KEY = "token"
ROLE_KEY = "role"
USER_KEY = "user"
# Binds the persisted profile to the token it was saved with.
TOKEN_DIGEST_FIELD = "tokenDigest"

SessionListener = Callable[[Session], None]


def _token_digest(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()[:16]


class SessionStore:
    """Reads, writes, and broadcasts the persisted authentication session.

    ``storage`` may be ``None`` when persisted storage is not available (for
    example before the host environment finished initialising). ``load`` then
    yields the absent session; ``save`` and ``clear`` raise
    ``StorageUnavailableError``.
    """

    def __init__(self, storage: Storage | None) -> None:
        self._storage = storage
        self._listeners: list[SessionListener] = []
        self._detach: Callable[[], None] | None = None
        if storage is not None:
            self._detach = storage.add_listener(self._on_storage_event)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def load(self) -> Session:
        """Read the persisted session, degrading to the absent session on any problem."""
        if self._storage is None:
            return Session.absent()

        try:
            token = self._storage.get_item(TOKEN_KEY)
            role_raw = self._storage.get_item(ROLE_KEY)
            user_raw = self._storage.get_item(USER_KEY)
        except StorageUnavailableError:
            logger.warning("Session storage unavailable, treating session as absent")
            return Session.absent()

        if not token or not role_raw or not user_raw:
            return Session.absent()

        try:
            role = Role.parse(role_raw)
            payload = json.loads(user_raw)
            if not isinstance(payload, dict):
                raise TypeError("user value is not an object")
            profile = UserSummary.from_payload(payload)
        except (ValueError, TypeError, PydanticValidationError):
            logger.warning("Persisted session is malformed, treating session as absent")
            return Session.absent()

        if payload.get(TOKEN_DIGEST_FIELD) != _token_digest(token):
            logger.debug("Persisted profile belongs to another token, treating session as absent")
            return Session.absent()

        if profile.role is not role:
            # Another context is midway through replacing the session.
            logger.debug("Persisted role and profile disagree, treating session as absent")
            return Session.absent()

        return Session(token=token, role=role, profile=profile)

    def save(self, token: str, profile: UserSummary | Mapping[str, Any]) -> Session:
        """Persist a new session and broadcast the change.

        Credential-bearing fields are stripped from ``profile`` before it is
        written. The token is written last so a concurrent ``load`` never sees
        the new token paired with the old profile's role.

        Returns:
            The session as it will be loaded back.

        Raises:
            StorageUnavailableError: If storage is missing or a write fails.
        """
        storage = self._require_storage()
        summary = profile if isinstance(profile, UserSummary) else UserSummary.from_payload(profile)

        record = {**summary.to_storage(), TOKEN_DIGEST_FIELD: _token_digest(token)}
        storage.set_item(USER_KEY, json.dumps(record))
        storage.set_item(ROLE_KEY, summary.role.value)
        storage.set_item(TOKEN_KEY, token)

        logger.info(
            "Session saved",
            extra={"user_id": summary.id, "role": summary.role.value},
        )
        self._broadcast()
        return Session(token=token, role=summary.role, profile=summary)

    def clear(self) -> None:
        """Remove all session keys and broadcast the change.

        Raises:
            StorageUnavailableError: If storage is missing or a removal fails.
        """
        storage = self._require_storage()
        storage.remove_item(TOKEN_KEY)
        storage.remove_item(ROLE_KEY)
        storage.remove_item(USER_KEY)
        logger.info("Session cleared")
        self._broadcast()

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register ``listener`` for session changes; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(listener)

        return _unsubscribe

    def close(self) -> None:
        """Stop receiving change events from the underlying storage."""
        if self._detach is not None:
            self._detach()
            self._detach = None
        self._listeners.clear()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _require_storage(self) -> Storage:
        if self._storage is None:
            msg = "Session storage is not available"
            raise StorageUnavailableError(msg)
        return self._storage

    def _on_storage_event(self, event: StorageEvent) -> None:
        # save writes the token last and clear removes it first, so a token
        # change marks a complete triple.
        if event.key == TOKEN_KEY:
            self._broadcast()

    def _broadcast(self) -> None:
        session = self.load()
        for listener in list(self._listeners):
            try:
                listener(session)
            except Exception:
                logger.exception("Session listener failed")
