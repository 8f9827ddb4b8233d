"""
S3Storage — AWS S3 key-value adapter using aioboto3.

Install extras: pip install "eventq[s3]"

Layout
------
Each key is stored as its own object at "<prefix><key>":

  get_item()    → GetObject; NoSuchKey / 404 → None
  set_item()    → PutObject (unconditional, text/plain UTF-8)
  remove_item() → DeleteObject (S3 does not error on missing keys)

Compatible with S3-compatible storage: MinIO, Cloudflare R2, Tigris, etc.
"""
from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING

from eventq.domain.errors import StorageError

if TYPE_CHECKING:
    from aioboto3 import Session as AioBoto3Session


@dataclasses.dataclass
class S3Storage:
    """
    AWS S3 storage adapter.

    Parameters
    ----------
    bucket       : S3 bucket name
    prefix       : prepended to every key (e.g. "eventq/")
    session      : aioboto3.Session — created lazily from env vars if omitted
    region_name  : AWS region passed to the S3 client
    endpoint_url : custom endpoint for S3-compatible backends (e.g. MinIO)
    """

    bucket: str
    prefix: str = ""
    session: AioBoto3Session | None = None
    region_name: str | None = None
    endpoint_url: str | None = None

    def _get_session(self) -> AioBoto3Session:
        if self.session is not None:
            return self.session
        try:
            import aioboto3  # type: ignore[import-untyped]
        except ImportError as exc:
            raise ImportError(
                "S3Storage requires aioboto3. Install with: pip install 'eventq[s3]'"
            ) from exc
        self.session = aioboto3.Session()
        return self.session  # type: ignore[return-value]

    def _client_kwargs(self) -> dict[str, str]:
        """Build kwargs forwarded to the S3 client constructor."""
        kwargs: dict[str, str] = {}
        if self.region_name:
            kwargs["region_name"] = self.region_name
        if self.endpoint_url:
            kwargs["endpoint_url"] = self.endpoint_url
        return kwargs

    def _object_key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def get_item(self, key: str) -> str | None:
        """Read one entry. Returns None if the object does not exist."""
        session = self._get_session()
        try:
            async with session.client("s3", **self._client_kwargs()) as s3:  # type: ignore[attr-defined]
                try:
                    response = await s3.get_object(
                        Bucket=self.bucket, Key=self._object_key(key)
                    )
                    content: bytes = await response["Body"].read()
                    return content.decode("utf-8")
                except Exception as exc:
                    if _s3_error_code(exc) in ("NoSuchKey", "404"):
                        return None
                    raise
        except StorageError:
            raise
        except Exception as exc:
            raise StorageError("S3 read failed", exc) from exc

    async def set_item(self, key: str, value: str) -> None:
        session = self._get_session()
        try:
            async with session.client("s3", **self._client_kwargs()) as s3:  # type: ignore[attr-defined]
                await s3.put_object(
                    Bucket=self.bucket,
                    Key=self._object_key(key),
                    Body=value.encode("utf-8"),
                    ContentType="text/plain; charset=utf-8",
                )
        except Exception as exc:
            raise StorageError("S3 write failed", exc) from exc

    async def remove_item(self, key: str) -> None:
        session = self._get_session()
        try:
            async with session.client("s3", **self._client_kwargs()) as s3:  # type: ignore[attr-defined]
                await s3.delete_object(Bucket=self.bucket, Key=self._object_key(key))
        except Exception as exc:
            if _s3_error_code(exc) in ("NoSuchKey", "404"):
                return
            raise StorageError("S3 delete failed", exc) from exc


def _s3_error_code(exc: Exception) -> str:
    """Extract the error code from a botocore ClientError, or return ''."""
    response = getattr(exc, "response", None)
    if isinstance(response, dict):
        error = response.get("Error", {})
        if isinstance(error, dict):
            code = error.get("Code", "")
            return str(code) if code else ""
    return ""
