"""Shared type aliases used across mortar modules."""

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeAlias

if TYPE_CHECKING:
    from mortar.context import Context
    from mortar.http.request import Request
    from mortar.http.writer import ResponseWriter

# Service handler: receives the request context, returns None or an error
ServiceHandler: TypeAlias = Callable[["Context"], Any]

# Template data callback: receives the request context, returns render data
TemplateHandler: TypeAlias = Callable[["Context"], Any]

# Error handler: receives the context and the fault or returned error
ErrorHandler: TypeAlias = Callable[["Context", BaseException], Any]

# Endpoint: the compiled form every route is stored as
Endpoint: TypeAlias = Callable[["Request", "ResponseWriter"], Awaitable[None]]
