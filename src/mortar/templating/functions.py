"""The shared template function set and the value templates render against.

Every compiled template sees the same globals. ``include`` is the one
that matters: it resolves a path relative to the *including* file's
directory, pulls the target through the template cache, and renders it
with a scope rooted at the target's own directory, so nested includes
keep resolving correctly::

    {# templates/pages/index.html #}
    {{ include(page, "../partials/header.html") }}
    <h1>{{ data.title }}</h1>
"""

from __future__ import annotations

import html
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from markupsafe import Markup

if TYPE_CHECKING:
    from mortar.http.writer import Writer
    from mortar.templating.cache import TemplateCache


@dataclass(frozen=True, slots=True)
class PageScope:
    """What ``page`` refers to inside a template.

    ``data`` is whatever the page callback returned (also exposed to the
    template directly as ``data``). ``dirname`` anchors relative
    includes, ``parent`` is the template currently executing, and
    ``writer`` is the response sink of the request being served.
    """

    data: Any
    dirname: str
    parent: Any = None
    writer: Writer | None = None


def render_scope(template: Any, scope: PageScope) -> str:
    """Execute a compiled template against *scope*."""
    return template.render({"page": scope, "data": scope.data})


def make_include(cache: TemplateCache) -> Any:
    """Build the ``include`` function bound to *cache*.

    Resolution takes the cache lock and releases it before rendering, so
    an included file may include further files (or the same one with a
    different data path) without re-entering the lock.
    """

    def include(scope: PageScope, filename: str) -> Markup:
        path = os.path.join(scope.dirname, filename)
        cached = cache.resolve(path)
        child = PageScope(
            data=scope.data,
            dirname=os.path.dirname(path),
            parent=cached.template,
            writer=scope.writer,
        )
        return Markup(render_scope(cached.template, child))

    return include


def css(href: str) -> Markup:
    """A stylesheet ``<link>`` tag."""
    return Markup(
        f"<link type='text/css' href='{html.escape(href, quote=True)}' rel='stylesheet'/>"
    )


BUILTIN_FUNCTIONS: dict[str, Any] = {
    "css": css,
}
