"""Mortar: a small web toolkit for template pages, services and static files.

Basic usage::

    from mortar import App, AppConfig

    app = App(AppConfig(debug=True))

    @app.service("/hello")
    def hello(ctx):
        ctx.write_str("Hello, World!")

    def index(ctx):
        return {"title": "Home"}

    app.service("/", app.template_page("templates/index.html", index))
    app.static_page("/assets/", "./public")
    app.serve()
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "BadParameter",
    "ConfigurationError",
    "Context",
    "HTTPError",
    "MortarError",
    "NotFound",
    "Request",
    "Response",
    "Session",
    "StaticResource",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import mortar`` fast while providing a clean top-level API.
    """
    if name == "App":
        from mortar.app import App

        return App

    if name == "AppConfig":
        from mortar.config import AppConfig

        return AppConfig

    if name == "Context":
        from mortar.context import Context

        return Context

    if name == "Request":
        from mortar.http.request import Request

        return Request

    if name == "Response":
        from mortar.http.response import Response

        return Response

    if name == "Session":
        from mortar.sessions import Session

        return Session

    if name == "StaticResource":
        from mortar.static.resource import StaticResource

        return StaticResource

    if name in ("BadParameter", "ConfigurationError", "HTTPError", "MortarError", "NotFound"):
        from mortar import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
