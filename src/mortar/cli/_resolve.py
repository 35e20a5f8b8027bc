"""Find the ``App`` named on the command line."""

import importlib
from typing import Any

from mortar.app import App

DEFAULT_ATTRIBUTE = "app"


def _load(target: str) -> Any:
    module_name, _, attribute = target.partition(":")
    module = importlib.import_module(module_name)
    obj: Any = module
    # "pkg.mod:site.app" walks attributes after the colon
    for part in (attribute or DEFAULT_ATTRIBUTE).split("."):
        obj = getattr(obj, part)
    return obj


def resolve_app(target: str) -> App:
    """Return the app that *target* (``module[:attribute]``) points at.

    A bare module name means its ``app`` attribute. When the attribute is
    a factory rather than an app it is called once without arguments.
    Import and lookup failures surface as ``ModuleNotFoundError`` and
    ``AttributeError``; anything that is not an app as ``TypeError``.
    """
    obj = _load(target)

    if not isinstance(obj, App) and callable(obj):
        try:
            obj = obj()
        except Exception as exc:
            msg = f"Factory function {target!r} raised an error: {exc}"
            raise TypeError(msg) from exc

    if isinstance(obj, App):
        return obj
    msg = f"{target!r} resolved to {type(obj).__name__}, not a mortar.App instance"
    raise TypeError(msg)
