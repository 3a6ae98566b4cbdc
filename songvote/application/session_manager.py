"""Login sessions keyed by opaque tokens."""

import secrets
import time
from collections.abc import Callable
from typing import Any, Final, Protocol

from ..logging_config import get_logger

logger: Final = get_logger(__name__)


class SessionStore(Protocol):
    def load(self, token: str, now: float) -> tuple[dict[str, Any], float] | None: ...

    def save(self, token: str, data: dict[str, Any], expiry: float) -> None: ...

    def delete(self, token: str) -> None: ...

    def delete_expired(self, now: float) -> int: ...


class SessionManager:
    """Put/get/clear values in a token-keyed session.

    A session's expiry is fixed when it is first written; later writes keep
    it. Expired sessions read as empty until the sweeper removes them.
    """

    def __init__(
        self,
        store: SessionStore,
        lifetime_seconds: float,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.lifetime_seconds = lifetime_seconds
        self.clock = clock

    @staticmethod
    def new_token() -> str:
        return secrets.token_urlsafe(32)

    def put(self, token: str, key: str, value: Any) -> None:
        now = self.clock()
        loaded = self.store.load(token, now)
        if loaded is None:
            data: dict[str, Any] = {}
            expiry = now + self.lifetime_seconds
        else:
            data, expiry = loaded
        data[key] = value
        self.store.save(token, data, expiry)

    def get(self, token: str | None, key: str, default: Any = None) -> Any:
        if not token:
            return default
        loaded = self.store.load(token, self.clock())
        if loaded is None:
            return default
        data, _ = loaded
        return data.get(key, default)

    def clear(self, token: str | None) -> None:
        """Forget a session. Unknown or missing tokens are ignored."""
        if token:
            self.store.delete(token)

    def sweep_expired(self, now: float | None = None) -> int:
        removed = self.store.delete_expired(self.clock() if now is None else now)
        if removed:
            logger.info("Expired sessions removed", count=removed)
        return removed

    def start(self, values: dict[str, Any], previous_token: str | None = None) -> str:
        """Begin a fresh session holding ``values``.

        The previous token, if any, is discarded so a login never reuses a
        token that existed before authentication.
        """
        self.clear(previous_token)
        token = self.new_token()
        for key, value in values.items():
            self.put(token, key, value)
        return token
