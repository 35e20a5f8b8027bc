"""Prefix router with trie-based path matching.

Patterns are registered during setup and the table is frozen when the
app starts serving. Matching walks the path one segment at a time and
remembers the deepest subtree pattern seen, so the longest pattern wins
and ``"/"`` acts as the catch-all.
"""

from mortar.errors import ConfigurationError, NotFound
from mortar.routing.route import Route, RouteMatch


def split_path(path: str) -> list[str]:
    """Split a path into its non-empty segments.

    Examples::

        "/"              -> []
        "/assets/"       -> ["assets"]
        "/api/v2/users"  -> ["api", "v2", "users"]
    """
    return [part for part in path.split("/") if part]


class _TrieNode:
    """A node in the route trie. Mutable during setup only."""

    __slots__ = ("children", "exact", "subtree")

    def __init__(self) -> None:
        self.children: dict[str, _TrieNode] = {}
        # Route registered without a trailing slash
        self.exact: Route | None = None
        # Route registered with a trailing slash (owns the subtree)
        self.subtree: Route | None = None


class Router:
    """Compiled prefix router.

    Usage::

        router = Router()
        router.add(Route("/", site))
        router.add(Route("/assets/", assets))
        router.add(Route("/login", login))
        router.compile()
        match = router.match("/assets/css/app.css")   # -> assets
    """

    __slots__ = ("_compiled", "_root", "_routes")

    def __init__(self) -> None:
        self._root = _TrieNode()
        self._compiled = False
        self._routes: list[Route] = []

    def add(self, route: Route) -> None:
        """Add a route. Must be called before ``compile()``."""
        if self._compiled:
            msg = "Cannot add routes after compilation."
            raise RuntimeError(msg)
        if not route.pattern.startswith("/"):
            msg = f"Route pattern {route.pattern!r} must start with '/'."
            raise ConfigurationError(msg)

        node = self._root
        for segment in split_path(route.pattern):
            node = node.children.setdefault(segment, _TrieNode())

        slot = "subtree" if route.is_subtree else "exact"
        if getattr(node, slot) is not None:
            msg = f"Pattern {route.pattern!r} is already registered."
            raise ConfigurationError(msg)
        setattr(node, slot, route)
        self._routes.append(route)

    @property
    def routes(self) -> list[Route]:
        """Registered routes in registration order."""
        return list(self._routes)

    def compile(self) -> None:
        """Freeze the router. No more routes can be added."""
        self._compiled = True

    def match(self, path: str) -> RouteMatch:
        """Return the route with the longest pattern matching *path*.

        Raises ``NotFound`` when not even a catch-all pattern matches.
        """
        parts = split_path(path)
        trailing = path.endswith("/") and bool(parts)
        node = self._root
        best = node.subtree

        for index, part in enumerate(parts):
            child = node.children.get(part)
            if child is None:
                break
            node = child
            is_last = index == len(parts) - 1
            if is_last:
                if not trailing and node.exact is not None:
                    return RouteMatch(route=node.exact)
                if node.subtree is not None:
                    if not trailing:
                        return RouteMatch(route=None, redirect=path + "/")
                    return RouteMatch(route=node.subtree)
            elif node.subtree is not None:
                best = node.subtree

        if best is None:
            raise NotFound(f"No route matches {path!r}")
        return RouteMatch(route=best)
