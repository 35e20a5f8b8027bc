"""Server-side sessions keyed by a signed cookie.

The cookie carries only the session id, signed with ``itsdangerous``
using the app's hash key (salted with its block key). Values live in a
``SessionStore``; the default keeps them in process memory. Sessions are
started lazily: a request that never touches ``ctx.session`` never reads
or writes the cookie.
"""

from __future__ import annotations

import secrets
import threading
import time
from collections.abc import Iterator, MutableMapping
from typing import TYPE_CHECKING, Any, Protocol

from itsdangerous import BadData, URLSafeTimedSerializer

from mortar.errors import ConfigurationError
from mortar.http.cookies import SetCookie

if TYPE_CHECKING:
    from mortar.config import AppConfig
    from mortar.http.request import Request
    from mortar.http.writer import Writer


class SessionStore(Protocol):
    """Persistence contract for session values.

    Implementations must be safe to call from concurrent requests.
    """

    def load(self, sid: str) -> dict[str, Any] | None: ...

    def save(self, sid: str, values: dict[str, Any], lifetime: float) -> None: ...

    def delete(self, sid: str) -> None: ...


class MemorySessionStore:
    """In-process session store with per-entry expiry.

    Expired entries are dropped when read back and on every save, so
    sessions that are never revisited do not pile up.
    """

    __slots__ = ("_data", "_lock")

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._data: dict[str, tuple[float, dict[str, Any]]] = {}

    def load(self, sid: str) -> dict[str, Any] | None:
        with self._lock:
            entry = self._data.get(sid)
            if entry is None:
                return None
            expires, values = entry
            if expires < time.monotonic():
                del self._data[sid]
                return None
            return dict(values)

    def save(self, sid: str, values: dict[str, Any], lifetime: float) -> None:
        with self._lock:
            now = time.monotonic()
            self._prune(now)
            self._data[sid] = (now + lifetime, dict(values))

    def delete(self, sid: str) -> None:
        with self._lock:
            self._data.pop(sid, None)

    def prune(self) -> int:
        """Drop every expired entry; returns how many were dropped."""
        with self._lock:
            return self._prune(time.monotonic())

    def _prune(self, now: float) -> int:
        # Caller holds the lock
        expired = [sid for sid, (expires, _) in self._data.items() if expires < now]
        for sid in expired:
            del self._data[sid]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


class Session(MutableMapping[str, Any]):
    """Values for one visitor, plus the id that finds them again."""

    __slots__ = ("_destroyed", "_values", "is_new", "sid")

    def __init__(self, sid: str, values: dict[str, Any] | None = None, *, is_new: bool) -> None:
        self.sid = sid
        self.is_new = is_new
        self._values: dict[str, Any] = values or {}
        self._destroyed = False

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._values[key] = value

    def __delitem__(self, key: str) -> None:
        del self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"Session({self.sid!r}, {self._values!r})"

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def destroy(self) -> None:
        """Drop every value and expire the cookie at the end of the request."""
        self._values.clear()
        self._destroyed = True

    def to_dict(self) -> dict[str, Any]:
        return dict(self._values)


class SessionManager:
    """Starts sessions from requests and commits them to responses."""

    __slots__ = ("_cookie_name", "_lifetime", "_serializer", "_store")

    def __init__(self, config: AppConfig) -> None:
        if not config.session_hash_key or not config.session_block_key:
            msg = "SessionManager needs a config with session keys; call with_defaults() first."
            raise ConfigurationError(msg)

        self._cookie_name = config.cookie_name
        self._lifetime = config.session_exp
        self._store: SessionStore = (
            config.session_store if config.session_store is not None else MemorySessionStore()
        )
        self._serializer = URLSafeTimedSerializer(
            config.session_hash_key,
            salt=config.session_block_key,
        )

    @property
    def store(self) -> SessionStore:
        return self._store

    @property
    def cookie_name(self) -> str:
        return self._cookie_name

    def start(self, request: Request) -> Session:
        """Return the visitor's session, or a fresh one.

        An absent, tampered or expired cookie, or an id the store no
        longer knows, all start a new session.
        """
        raw = request.cookies.get(self._cookie_name)
        if raw:
            try:
                sid = self._serializer.loads(raw, max_age=self._lifetime)
            except BadData:
                sid = None
            if isinstance(sid, str):
                values = self._store.load(sid)
                if values is not None:
                    return Session(sid, values, is_new=False)
        return Session(secrets.token_urlsafe(32), is_new=True)

    def commit(self, session: Session, writer: Writer) -> None:
        """Persist *session* and attach its cookie to *writer*."""
        if session.destroyed:
            self._store.delete(session.sid)
            cookie = SetCookie(name=self._cookie_name, value="", max_age=0, expires=0)
        else:
            self._store.save(session.sid, session.to_dict(), self._lifetime)
            lifetime = int(self._lifetime)
            cookie = SetCookie(
                name=self._cookie_name,
                value=self._serializer.dumps(session.sid),
                max_age=lifetime,
                expires=time.time() + lifetime,
            )
        writer.headers.add("Set-Cookie", cookie.to_header_value())
