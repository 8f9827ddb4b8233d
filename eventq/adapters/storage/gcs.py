"""
GCSStorage — Google Cloud Storage key-value adapter using google-cloud-storage.

Install extras: pip install "eventq[gcs]"

Each key is stored as its own blob at "<prefix><key>". A missing blob reads
as None and deleting a missing blob is ignored.

Note: google-cloud-storage is synchronous. All operations are wrapped in
asyncio.to_thread to avoid blocking the event loop.
"""
from __future__ import annotations

import asyncio
import dataclasses
from typing import TYPE_CHECKING

from eventq.domain.errors import StorageError

if TYPE_CHECKING:
    from google.cloud.storage import Client as GCSClient


def _not_found_type() -> type[Exception]:
    try:
        from google.api_core import exceptions as gapi_exc  # type: ignore[import-untyped]
    except ImportError as exc:
        raise ImportError(
            "GCSStorage requires google-cloud-storage. "
            "Install with: pip install 'eventq[gcs]'"
        ) from exc
    return gapi_exc.NotFound


@dataclasses.dataclass
class GCSStorage:
    """
    Google Cloud Storage adapter.

    Parameters
    ----------
    bucket_name : GCS bucket name
    prefix      : prepended to every key (e.g. "eventq/")
    client      : google.cloud.storage.Client — created lazily if omitted
    """

    bucket_name: str
    prefix: str = ""
    client: GCSClient | None = None

    def _get_client(self) -> GCSClient:
        if self.client is not None:
            return self.client
        try:
            from google.cloud import storage  # type: ignore[import-untyped]
        except ImportError as exc:
            raise ImportError(
                "GCSStorage requires google-cloud-storage. "
                "Install with: pip install 'eventq[gcs]'"
            ) from exc
        self.client = storage.Client()
        return self.client  # type: ignore[return-value]

    async def get_item(self, key: str) -> str | None:
        try:
            return await asyncio.to_thread(self._sync_get, key)
        except (StorageError, ImportError):
            raise
        except Exception as exc:
            raise StorageError("GCS read failed", exc) from exc

    async def set_item(self, key: str, value: str) -> None:
        try:
            await asyncio.to_thread(self._sync_set, key, value)
        except ImportError:
            raise
        except Exception as exc:
            raise StorageError("GCS write failed", exc) from exc

    async def remove_item(self, key: str) -> None:
        try:
            await asyncio.to_thread(self._sync_remove, key)
        except ImportError:
            raise
        except Exception as exc:
            raise StorageError("GCS delete failed", exc) from exc

    # ------------------------------------------------------------------ #
    # Synchronous implementations (executed in a thread-pool worker)      #
    # ------------------------------------------------------------------ #

    def _blob(self, key: str):
        client = self._get_client()
        return client.bucket(self.bucket_name).blob(f"{self.prefix}{key}")  # type: ignore[attr-defined]

    def _sync_get(self, key: str) -> str | None:
        not_found = _not_found_type()
        try:
            return self._blob(key).download_as_text(encoding="utf-8")
        except not_found:
            return None

    def _sync_set(self, key: str, value: str) -> None:
        self._blob(key).upload_from_string(
            value, content_type="text/plain; charset=utf-8"
        )

    def _sync_remove(self, key: str) -> None:
        not_found = _not_found_type()
        try:
            self._blob(key).delete()
        except not_found:
            pass
