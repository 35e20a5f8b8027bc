"""Template cache: compiled Jinja2 templates keyed by file path.

Each entry remembers the modification time of the file it was compiled
from. A request for an unchanged file returns the very same entry; a
changed file is read and recompiled, and the entry is swapped out as a
whole. One lock covers the staleness check and the recompile. Rendering
happens on the returned handle, outside the lock.

Thread safety:
    ``resolve()`` may be called from any number of request tasks or
    worker threads at once. Compilation is serialized; execution is not.
"""

import logging
import os
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from jinja2 import Environment, TemplateSyntaxError

from mortar.errors import TemplateCompileError
from mortar.templating.functions import BUILTIN_FUNCTIONS, make_include


@dataclass(frozen=True, slots=True)
class CachedTemplate:
    """A compiled template and the file state it was compiled from."""

    source_path: str
    last_modified: int  # st_mtime_ns of the source file
    template: Any

    @property
    def modified_at(self) -> datetime:
        """``last_modified`` as an aware UTC datetime."""
        return datetime.fromtimestamp(self.last_modified / 1_000_000_000, tz=UTC)


def create_environment() -> Environment:
    """Create the Jinja2 Environment a cache compiles into.

    Templates are compiled from source strings read by the cache, so no
    loader is configured.
    """
    env = Environment(autoescape=True)
    for name, func in BUILTIN_FUNCTIONS.items():
        env.globals[name] = func
    return env


class TemplateCache:
    """Compiles template files on demand and keeps them until they change.

    Usage::

        cache = TemplateCache()
        entry = cache.resolve("templates/index.html")
        html = render_scope(entry.template, PageScope(data=..., dirname="templates"))
    """

    __slots__ = ("_entries", "_env", "_lock", "_log")

    def __init__(
        self,
        env: Environment | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._env = env if env is not None else create_environment()
        self._log = logger or logging.getLogger("mortar.templating")
        self._lock = threading.Lock()
        self._entries: dict[str, CachedTemplate] = {}
        self._env.globals["include"] = make_include(self)

    @property
    def environment(self) -> Environment:
        return self._env

    @property
    def logger(self) -> logging.Logger:
        return self._log

    @logger.setter
    def logger(self, value: logging.Logger) -> None:
        self._log = value

    def template_func(self, name: str, func: Callable[..., Any] | None) -> None:
        """Add *func* to the function set shared by every template."""
        if func is None:
            self._log.error("ERR. Template Function %r must not be None", name)
        self._env.globals[name] = func

    def resolve(self, path: str | os.PathLike[str]) -> CachedTemplate:
        """Return the compiled template for *path*, recompiling if it changed.

        Raises ``FileNotFoundError`` (or another ``OSError``) when the file
        cannot be opened, and ``TemplateCompileError`` when it does not
        parse. Neither leaves a partial entry behind.
        """
        key = os.fspath(path)
        with open(key, "rb") as fh:
            mtime = os.fstat(fh.fileno()).st_mtime_ns

            with self._lock:
                cached = self._entries.get(key)
                if cached is not None and cached.last_modified == mtime:
                    return cached

                self._log.info("Template change %s", key)
                source = fh.read().decode("utf-8")
                try:
                    template = self._env.from_string(source)
                except TemplateSyntaxError as exc:
                    raise TemplateCompileError(key, str(exc)) from exc

                entry = CachedTemplate(source_path=key, last_modified=mtime, template=template)
                self._entries[key] = entry
                return entry

    def invalidate(self, path: str | os.PathLike[str] | None = None) -> None:
        """Forget one entry, or all of them when *path* is ``None``."""
        with self._lock:
            if path is None:
                self._entries.clear()
            else:
                self._entries.pop(os.fspath(path), None)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        with self._lock:
            return os.fspath(path) in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
