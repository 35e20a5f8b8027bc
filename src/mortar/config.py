"""Application configuration.

AppConfig is a frozen dataclass: immutable after creation, IDE-autocompletable,
no string-key dict lookups. Collaborators left as ``None`` are filled in by
``with_defaults()`` when the app is constructed.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, replace
from pathlib import Path
from typing import TYPE_CHECKING

from mortar._internal.types import ErrorHandler
from mortar.errors import ConfigurationError

if TYPE_CHECKING:
    from mortar.sessions import SessionStore

HASH_KEY_SIZE = 32
BLOCK_KEY_SIZE = 16


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(debug=True, port=7077, cookie_name="testserver")
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False

    # Templates
    template_dir: str | Path = "templates"

    # max-age for mapping-served static files and template pages
    static_cache_seconds: int = 0

    # Sessions
    session_exp: float = 2 * 60 * 60
    cookie_name: str = "mortar_session"
    session_hash_key: bytes | None = None
    session_block_key: bytes | None = None
    session_store: SessionStore | None = None

    # Collaborators
    logger: logging.Logger | None = None
    error_handler: ErrorHandler | None = None

    # TLS (optional)
    ssl_certfile: str | None = None
    ssl_keyfile: str | None = None

    def with_defaults(self) -> AppConfig:
        """Return a copy with every missing collaborator filled in.

        Session keys are generated randomly, which means sessions do not
        survive a restart unless the keys are supplied.
        """
        from mortar.server.errors import default_error_handler

        hash_key = self.session_hash_key or secrets.token_bytes(HASH_KEY_SIZE)
        block_key = self.session_block_key or secrets.token_bytes(BLOCK_KEY_SIZE)
        if len(hash_key) != HASH_KEY_SIZE:
            msg = f"session_hash_key must be {HASH_KEY_SIZE} bytes, got {len(hash_key)}."
            raise ConfigurationError(msg)
        if len(block_key) != BLOCK_KEY_SIZE:
            msg = f"session_block_key must be {BLOCK_KEY_SIZE} bytes, got {len(block_key)}."
            raise ConfigurationError(msg)

        return replace(
            self,
            session_hash_key=hash_key,
            session_block_key=block_key,
            session_exp=self.session_exp if self.session_exp > 0 else 2 * 60 * 60,
            logger=self.logger or logging.getLogger("mortar"),
            error_handler=self.error_handler or default_error_handler,
        )
