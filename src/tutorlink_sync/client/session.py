from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

logger = logging.getLogger(__name__)

SESSION_EXPIRED_MESSAGE = "Your session has expired. Please log in again."

ExpiredListener = Callable[[str], None]


@dataclass(frozen=True, slots=True)
class SessionUser:
    """Authenticated caller as held by the client."""

    user_id: str
    token: str | None = None
    profile: dict[str, Any] = field(default_factory=dict)


class SessionStore:
    """Holds the current session and broadcasts session expiry."""

    def __init__(self) -> None:
        self._user: SessionUser | None = None
        self._expired_listeners: list[ExpiredListener] = []

    @property
    def user(self) -> SessionUser | None:
        return self._user

    @property
    def user_id(self) -> str | None:
        return self._user.user_id if self._user else None

    @property
    def token(self) -> str | None:
        return self._user.token if self._user else None

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None and bool(self._user.token)

    def start(self, user: SessionUser) -> None:
        self._user = user
        logger.debug("Session started for user %s", user.user_id)

    def clear(self) -> None:
        self._user = None

    def subscribe_expired(self, listener: ExpiredListener) -> Callable[[], None]:
        self._expired_listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._expired_listeners:
                self._expired_listeners.remove(listener)

        return _unsubscribe

    def expire(self, message: str = SESSION_EXPIRED_MESSAGE) -> None:
        """Clear the session and notify every listener."""
        self.clear()
        logger.info("Session expired")
        for listener in list(self._expired_listeners):
            try:
                listener(message)
            except Exception:
                logger.exception("Session-expired listener failed")
