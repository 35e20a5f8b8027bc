"""Mortar application class.

Mutable during setup (services, static pages, template functions).
Frozen when it starts serving: the first ASGI call or ``serve()``.
"""

import html
import inspect
import logging
import os
import threading
from collections.abc import Callable, Mapping
from dataclasses import replace
from pathlib import Path
from typing import Any

from mortar._internal.asgi import Receive, Scope, Send
from mortar._internal.types import Endpoint, ErrorHandler, ServiceHandler, TemplateHandler
from mortar.config import AppConfig
from mortar.errors import ConfigurationError
from mortar.http.request import Request
from mortar.http.writer import Writer
from mortar.lifecycle import service_endpoint
from mortar.routing.route import Route
from mortar.routing.router import Router
from mortar.server.handler import handle_request
from mortar.sessions import SessionManager
from mortar.static.page import StaticPage
from mortar.templating.cache import TemplateCache
from mortar.templating.page import template_page


class App:
    """The mortar application.

    Usage::

        app = App(AppConfig(debug=True))

        @app.service("/hello")
        def hello(ctx):
            ctx.write_str("hello")

        app.static_page("/assets/", "./public")
        app.serve()

    Thread safety:
        The setup phase is single-threaded. The freeze transition uses a
        Lock + double-check so exactly one caller compiles the router.
        After that the router, config and static mappings are read-only;
        the template cache carries its own lock.
    """

    __slots__ = (
        "_freeze_lock",
        "_frozen",
        "_router",
        "_server",
        "_sessions",
        "_shutdown_hooks",
        "_startup_hooks",
        "_templates",
        "config",
    )

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config: AppConfig = (config or AppConfig()).with_defaults()
        self._router = Router()
        self._templates = TemplateCache(logger=self.logger)
        self._sessions = SessionManager(self.config)
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()
        self._server: Any = None

    # -- Collaborators --

    @property
    def logger(self) -> logging.Logger:
        assert self.config.logger is not None
        return self.config.logger

    @property
    def error_handler(self) -> ErrorHandler:
        assert self.config.error_handler is not None
        return self.config.error_handler

    @property
    def template_dir(self) -> str:
        return os.fspath(self.config.template_dir)

    @property
    def templates(self) -> TemplateCache:
        """The template cache shared by every page of this app."""
        return self._templates

    @property
    def sessions(self) -> SessionManager:
        return self._sessions

    @property
    def routes(self) -> list[Route]:
        return self._router.routes

    def set_logger(self, logger: logging.Logger | None) -> None:
        if logger is None:
            msg = "logger must not be None"
            raise ConfigurationError(msg)
        self.config = replace(self.config, logger=logger)
        self._templates.logger = logger

    def set_template_dir(self, path: str | Path) -> None:
        """Base directory for ``Context.get_template()``."""
        self.config = replace(self.config, template_dir=path)

    def set_error_handler(self, handler: ErrorHandler) -> None:
        self._check_not_frozen()
        self.config = replace(self.config, error_handler=handler)

    def template_func(self, name: str, func: Callable[..., Any] | None) -> None:
        """Make *func* callable as *name* from every template."""
        self._templates.template_func(name, func)

    # -- Route registration --

    def service(
        self, path: str, handler: ServiceHandler | None = None
    ) -> Callable[[ServiceHandler], ServiceHandler] | None:
        """Register *handler* for *path*, directly or as a decorator.

        A path ending in ``/`` serves its whole subtree.
        """

        def decorator(func: ServiceHandler) -> ServiceHandler:
            if self.config.debug:
                self.logger.debug("Add Service %s", path)
            self._add(path, service_endpoint(self, func), "service")
            return func

        if handler is not None:
            decorator(handler)
            return None
        return decorator

    def template_page(self, template_file: str, handler: TemplateHandler) -> ServiceHandler:
        """Build a service handler rendering *template_file* with *handler*'s data.

        Register the result with ``service()``.
        """
        return template_page(self, template_file, handler)

    def static_page(
        self,
        base_url: str,
        directory: str | Path,
        mapping: Mapping[str, bytes] | None = None,
    ) -> StaticPage:
        """Serve *base_url* from *mapping*, falling back to *directory*."""
        page = StaticPage(base_url, directory, mapping, self.config.static_cache_seconds, self)
        self._add(page.base_url, page, "static")
        return page

    def jump_mapping(self, location: str, to: str) -> None:
        """Redirect requests for *location* to *to* with a 301.

        ``location="/"`` redirects every path no other pattern claims.
        """

        async def jump(request: Request, writer: Writer) -> None:
            writer.headers.add("Cache-Control", "no-store")
            if request.method == "HEAD":
                writer.write_header(405)
                return
            writer.headers.set("Location", to)
            writer.write_header(301)
            if request.method == "GET":
                writer.write(f'<a href="{html.escape(to)}">Moved Permanently</a>.\n')

        self._add(location, jump, "redirect")

    def _add(self, pattern: str, endpoint: Endpoint, kind: str) -> None:
        self._check_not_frozen()
        self._router.add(Route(pattern, endpoint, kind))

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync startup hook via decorator.

        Hooks run in registration order during ASGI lifespan startup,
        before the server begins accepting HTTP requests.
        """
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync shutdown hook via decorator.

        Hooks run in registration order during ASGI lifespan shutdown,
        after the server stops accepting new requests.
        """
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    # -- Serving --

    def serve(self, host: str | None = None, port: int | None = None) -> None:
        """Serve plain HTTP until ``shutdown()`` or ``close()``."""
        self._serve(host, port, None, None)

    def serve_tls(
        self,
        certfile: str | None = None,
        keyfile: str | None = None,
        *,
        host: str | None = None,
        port: int | None = None,
    ) -> None:
        """Serve HTTPS until ``shutdown()`` or ``close()``."""
        certfile = certfile or self.config.ssl_certfile
        keyfile = keyfile or self.config.ssl_keyfile
        if not certfile or not keyfile:
            msg = "serve_tls() needs a certificate and a key file"
            raise ConfigurationError(msg)
        self._serve(host, port, certfile, keyfile)

    def _serve(
        self,
        host: str | None,
        port: int | None,
        certfile: str | None,
        keyfile: str | None,
    ) -> None:
        from mortar.server.lifecycle import HttpServer

        self._ensure_frozen()
        self._server = HttpServer(
            self,
            host or self.config.host,
            port or self.config.port,
            ssl_certfile=certfile,
            ssl_keyfile=keyfile,
        )
        self._server.serve()

    def shutdown(self, timeout: float = 10.0) -> None:
        """Stop gracefully, waiting up to *timeout* seconds for requests.

        Raises ``TimeoutError`` when the deadline passes first.
        """
        if self._server is not None:
            self._server.shutdown(timeout)

    def close(self) -> None:
        """Stop immediately."""
        if self._server is not None:
            self._server.close()

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(scope, receive, send)
            return

        self._ensure_frozen()
        await handle_request(scope, receive, send, app=self, router=self._router)

    async def _handle_lifespan(
        self,
        scope: Scope,
        receive: Receive,
        send: Send,
    ) -> None:
        """Run the ASGI lifespan protocol.

        Freezes the app at startup, then runs registered startup/shutdown
        hooks and signals completion back to the server.
        """
        self._ensure_frozen()

        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    for hook in self._startup_hooks:
                        result = hook()
                        if inspect.isawaitable(result):
                            await result
                    await send({"type": "lifespan.startup.complete"})
                except Exception as exc:
                    self.logger.exception("startup hook failed")
                    await send(
                        {
                            "type": "lifespan.startup.failed",
                            "message": str(exc),
                        }
                    )
                    return

            elif msg_type == "lifespan.shutdown":
                for hook in self._shutdown_hooks:
                    result = hook()
                    if inspect.isawaitable(result):
                        await result
                await send({"type": "lifespan.shutdown.complete"})
                return

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._router.compile()
            self._frozen = True

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register services and static pages before calling app.serve()."
            )
            raise ConfigurationError(msg)
