"""Pre-compressed static resources.

A ``StaticResource`` maps a logical path (``"app.js"``,
``"img/logo.svg"``) to the gzip-compressed bytes of that file. The
mapping is read-only once built, so concurrent requests can share it
without locking.
"""

from __future__ import annotations

import gzip
import logging
import os
from collections.abc import Iterator, Mapping
from pathlib import Path

logger = logging.getLogger("mortar.static")


class StaticResource(Mapping[str, bytes]):
    """Read-only ``logical path -> gzip payload`` mapping.

    Usage::

        assets = StaticResource.from_directory("./public")
        app.static_page("/assets/", "./public", assets)

    Keys never start with ``/`` and always use ``/`` separators.
    """

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, bytes] | None = None) -> None:
        self._data: dict[str, bytes] = {
            key.lstrip("/"): payload for key, payload in (data or {}).items()
        }

    def __getitem__(self, key: str) -> bytes:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"StaticResource({len(self._data)} files)"

    @classmethod
    def from_directory(
        cls,
        directory: str | os.PathLike[str],
        *,
        compresslevel: int = 9,
    ) -> StaticResource:
        """Gzip every regular file below *directory* once.

        Hidden files and directories (leading ``.``) are skipped.
        Raises ``NotADirectoryError`` when *directory* is not a directory.
        """
        root = Path(directory)
        if not root.is_dir():
            raise NotADirectoryError(str(root))

        data: dict[str, bytes] = {}
        for path in sorted(root.rglob("*")):
            relative = path.relative_to(root)
            if any(part.startswith(".") for part in relative.parts):
                continue
            if not path.is_file():
                continue
            # mtime=0 keeps the payload stable across rebuilds
            data[relative.as_posix()] = gzip.compress(
                path.read_bytes(), compresslevel=compresslevel, mtime=0
            )
        logger.debug("bundled %d static files from %s", len(data), root)
        return cls(data)
