"""
LocalFileSystemStorage — one file per key under a root directory.

Suitable for local development, single-machine deployments, or integration
tests that need entries to survive a restart.

Layout
------
Each key maps to <root>/<quoted key>, where the key is percent-encoded
(urllib.parse.quote with no safe characters) so any string is a valid,
collision-free file name.

Atomicity
---------
set_item writes to a "%tmp-" file in the same directory, fsyncs it, and
os.replace()s it over the target. A reader therefore sees either the old or
the new value, never a torn write. remove_item ignores missing files.

Blocking I/O runs in a worker thread via asyncio.to_thread.
"""

from __future__ import annotations

import asyncio
import dataclasses
import os
import tempfile
from pathlib import Path
from urllib.parse import quote, unquote

from eventq.domain.errors import StorageError

# quote() always follows "%" with two hex digits, so no encoded key starts with this.
_TMP_PREFIX = "%tmp-"


@dataclasses.dataclass
class LocalFileSystemStorage:
    """
    Stores each entry in its own file.

    Parameters
    ----------
    root : directory holding the entries (created on first write)
    """

    root: Path

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    async def get_item(self, key: str) -> str | None:
        try:
            return await asyncio.to_thread(self._sync_get, key)
        except OSError as exc:
            raise StorageError(f"Read of {key!r} failed", exc) from exc

    async def set_item(self, key: str, value: str) -> None:
        try:
            await asyncio.to_thread(self._sync_set, key, value)
        except OSError as exc:
            raise StorageError(f"Write of {key!r} failed", exc) from exc

    async def remove_item(self, key: str) -> None:
        try:
            await asyncio.to_thread(self._sync_remove, key)
        except OSError as exc:
            raise StorageError(f"Remove of {key!r} failed", exc) from exc

    def keys(self) -> list[str]:
        """All stored keys, decoded. Synchronous; for inspection and tests."""
        if not self.root.exists():
            return []
        return sorted(
            unquote(p.name)
            for p in self.root.iterdir()
            if p.is_file() and not p.name.startswith(_TMP_PREFIX)
        )

    # ------------------------------------------------------------------ #
    # Synchronous implementations (executed in a thread-pool worker)      #
    # ------------------------------------------------------------------ #

    def _path(self, key: str) -> Path:
        return self.root / quote(key, safe="")

    def _sync_get(self, key: str) -> str | None:
        try:
            return self._path(key).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def _sync_set(self, key: str, value: str) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.root, prefix=_TMP_PREFIX)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(value)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp, self._path(key))
        except BaseException:
            try:
                os.unlink(tmp)
            except FileNotFoundError:
                pass
            raise

    def _sync_remove(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            pass
