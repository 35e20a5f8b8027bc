"""Case-insensitive HTTP header collections.

``Headers`` is the immutable request side: raw byte pairs from the ASGI
scope, decoded on access. ``HeaderMap`` is the mutable response side a
``ResponseWriter`` exposes to handlers; it keeps insertion order and
allows repeated names.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping


class Headers(Mapping[str, str]):
    """Immutable, case-insensitive request headers.

    ``__getitem__`` returns the first matching value.
    ``get_list`` returns all values for a header.
    """

    __slots__ = ("_raw",)

    def __init__(self, raw: tuple[tuple[bytes, bytes], ...] = ()) -> None:
        object.__setattr__(self, "_raw", raw)

    def __getitem__(self, key: str) -> str:
        wanted = key.lower().encode("latin-1")
        for name, value in self._raw:
            if name.lower() == wanted:
                return value.decode("latin-1")
        raise KeyError(key)

    def __iter__(self) -> Iterator[str]:
        seen: set[str] = set()
        for name, _ in self._raw:
            key = name.decode("latin-1").lower()
            if key not in seen:
                seen.add(key)
                yield key

    def __len__(self) -> int:
        return len(set(self))

    def __repr__(self) -> str:
        return f"Headers({dict(self)!r})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """Return the first value for *key*, or *default* if missing."""
        try:
            return self[key]
        except KeyError:
            return default

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key*."""
        wanted = key.lower().encode("latin-1")
        return [value.decode("latin-1") for name, value in self._raw if name.lower() == wanted]


class HeaderMap:
    """Mutable, ordered, case-insensitive response headers.

    Mirrors the add/set/get/delete vocabulary handlers expect::

        writer.headers.add("Cache-Control", "private")
        writer.headers.set("Content-Type", "text/plain")
    """

    __slots__ = ("_items",)

    def __init__(self, items: list[tuple[str, str]] | None = None) -> None:
        self._items: list[tuple[str, str]] = list(items or ())

    def add(self, name: str, value: str) -> None:
        """Append a value, keeping any existing ones."""
        self._items.append((name, value))

    def set(self, name: str, value: str) -> None:
        """Replace every value of *name* with *value*."""
        self.delete(name)
        self._items.append((name, value))

    def get(self, name: str, default: str | None = None) -> str | None:
        """Return the first value for *name*, or *default*."""
        wanted = name.lower()
        for key, value in self._items:
            if key.lower() == wanted:
                return value
        return default

    def get_list(self, name: str) -> list[str]:
        wanted = name.lower()
        return [value for key, value in self._items if key.lower() == wanted]

    def delete(self, name: str) -> None:
        wanted = name.lower()
        self._items = [(k, v) for k, v in self._items if k.lower() != wanted]

    def items(self) -> tuple[tuple[str, str], ...]:
        return tuple(self._items)

    def copy(self) -> HeaderMap:
        return HeaderMap(self._items)

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        return self.get(name) is not None

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"HeaderMap({self._items!r})"
