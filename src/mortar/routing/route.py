"""Route and RouteMatch frozen dataclasses."""

from dataclasses import dataclass

from mortar._internal.types import Endpoint


@dataclass(frozen=True, slots=True)
class Route:
    """A registered URL pattern.

    A pattern ending in ``/`` owns its whole subtree; any other pattern
    matches one exact path.
    """

    pattern: str
    endpoint: Endpoint
    kind: str = "service"

    @property
    def is_subtree(self) -> bool:
        return self.pattern.endswith("/")


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful match.

    ``redirect`` is set when the path names a subtree root without its
    trailing slash; the caller answers with a 301 to that location.
    """

    route: Route | None
    redirect: str | None = None
