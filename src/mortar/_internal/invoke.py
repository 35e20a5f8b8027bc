"""Invoke helpers: call sync or async user callables uniformly.

Service handlers, template data callbacks, error handlers and close
handlers can all be plain functions or coroutines. The sync/async check
lives here and nowhere else.
"""

import inspect
from typing import Any


async def invoke(func: Any, *args: Any, **kwargs: Any) -> Any:
    """Call *func* and await the result if it is awaitable::

        def page(ctx):
            return {"title": "sync"}

        async def page(ctx):
            return {"title": await load_title()}
    """
    result = func(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result


def as_error(result: Any) -> BaseException | None:
    """Return *result* when a handler handed back an exception instead of raising."""
    if isinstance(result, BaseException):
        return result
    return None
