"""Mortar exception hierarchy.

Shared across the router, the request lifecycle, the template cache and
the static resolver so every module raises and catches the same types.
"""

from dataclasses import dataclass


class MortarError(Exception):
    """Base for all mortar-specific errors."""


class ConfigurationError(MortarError):
    """Raised when app configuration is invalid.

    Typically raised from ``AppConfig.with_defaults()`` or by a
    registration call made after the app started serving.
    """


@dataclass(frozen=True, slots=True)
class HTTPError(MortarError):
    """An error that maps directly to an HTTP status code.

    Raised by handlers, or built by the error interceptor from a status
    code written by the generic file server. The default error handler
    answers with ``status``.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404: no route matched the request path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class BadParameter(HTTPError):  # noqa: N818
    """400: a request parameter could not be converted.

    Raised by the typed parameter accessors on ``Context`` when no
    default was supplied.
    """

    name: str
    value: str

    def __init__(self, name: str, value: str, expected: str) -> None:
        super().__init__(
            status=400,
            detail=f"bad parameter: {name} not {expected}: {value!r}",
        )
        object.__setattr__(self, "name", name)
        object.__setattr__(self, "value", value)


class BindError(MortarError):
    """``Context.url_param()`` could not bind the path segments."""


class TemplateCompileError(MortarError):
    """A template file could not be parsed.

    The cache keeps whatever entry it had before; the next request after
    the file changes tries again.
    """

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path


class RequestAborted(MortarError):
    """Raised by ``Context.fatal()`` after the message has been logged."""
