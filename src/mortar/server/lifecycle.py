"""HTTP listener lifecycle on top of uvicorn.

``HttpServer.serve()`` blocks the calling thread until the listener
stops. ``shutdown()`` and ``close()`` are meant to be called from another
thread (or a signal handler) while ``serve()`` runs::

    server = HttpServer(app, "127.0.0.1", 8000)
    threading.Thread(target=server.serve).start()
    ...
    server.shutdown(timeout=5.0)
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

import uvicorn

if TYPE_CHECKING:
    from mortar.app import App

logger = logging.getLogger("mortar.server")


class HttpServer:
    """One uvicorn listener serving one app."""

    __slots__ = ("_server", "_started", "_stopped", "app", "host", "port", "tls")

    def __init__(
        self,
        app: App,
        host: str,
        port: int,
        *,
        ssl_certfile: str | None = None,
        ssl_keyfile: str | None = None,
    ) -> None:
        self.app = app
        self.host = host
        self.port = port
        self.tls = ssl_certfile is not None
        config = uvicorn.Config(
            app,
            host=host,
            port=port,
            lifespan="on",
            ssl_certfile=ssl_certfile,
            ssl_keyfile=ssl_keyfile,
            # Logging is configured by the application, not by uvicorn
            log_config=None,
            access_log=False,
        )
        self._server = uvicorn.Server(config)
        self._started = threading.Event()
        self._stopped = threading.Event()

    @property
    def url(self) -> str:
        scheme = "https" if self.tls else "http"
        return f"{scheme}://{self.host}:{self.port}"

    @property
    def running(self) -> bool:
        return self._started.is_set() and not self._stopped.is_set()

    def serve(self) -> None:
        """Listen and serve until ``shutdown()`` or ``close()`` is called."""
        self.app.logger.info("Server on %s", self.url)
        self._started.set()
        try:
            self._server.run()
        finally:
            self._stopped.set()

    def shutdown(self, timeout: float = 10.0) -> None:
        """Stop accepting connections and wait for in-flight requests.

        Raises ``TimeoutError`` when requests are still running after
        *timeout* seconds; they are then cancelled.
        """
        if not self._started.is_set():
            return
        self._server.config.timeout_graceful_shutdown = max(int(timeout), 1)
        self._server.should_exit = True
        if not self._stopped.wait(timeout):
            self._server.force_exit = True
            msg = f"server on {self.url} did not stop within {timeout}s"
            raise TimeoutError(msg)
        logger.info("server on %s stopped", self.url)

    def close(self) -> None:
        """Stop immediately without waiting for in-flight requests."""
        self._server.force_exit = True
        self._server.should_exit = True
