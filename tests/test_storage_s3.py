from unittest.mock import AsyncMock, MagicMock

import pytest

from eventq.adapters.storage.s3 import S3Storage, _s3_error_code
from eventq.domain.errors import StorageError

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class _AsyncCM:
    """Minimal async context manager wrapping a return value."""

    def __init__(self, value: object) -> None:
        self._value = value

    async def __aenter__(self) -> object:
        return self._value

    async def __aexit__(self, *args: object) -> None:
        pass


def _make_storage(
    s3: AsyncMock | None = None, prefix: str = ""
) -> tuple[S3Storage, AsyncMock]:
    if s3 is None:
        s3 = AsyncMock()
    session = MagicMock()
    session.client.return_value = _AsyncCM(s3)
    storage = S3Storage(bucket="my-bucket", prefix=prefix, session=session)
    return storage, s3


def _client_error(code: str) -> Exception:
    exc = Exception(f"ClientError: {code}")
    exc.response = {"Error": {"Code": code}}  # type: ignore[attr-defined]
    return exc


# ---------------------------------------------------------------------------
# get_item()
# ---------------------------------------------------------------------------

async def test_get_returns_decoded_body():
    storage, s3 = _make_storage()
    body = AsyncMock()
    body.read.return_value = b'{"op":"login"}'
    s3.get_object.return_value = {"Body": body, "ETag": '"abc"'}

    assert await storage.get_item("events--1") == '{"op":"login"}'
    s3.get_object.assert_awaited_once_with(Bucket="my-bucket", Key="events--1")


async def test_get_applies_prefix():
    storage, s3 = _make_storage(prefix="eventq/")
    body = AsyncMock()
    body.read.return_value = b"x"
    s3.get_object.return_value = {"Body": body}

    await storage.get_item("k")

    assert s3.get_object.call_args.kwargs["Key"] == "eventq/k"


async def test_get_no_such_key_returns_none():
    storage, s3 = _make_storage()
    s3.get_object.side_effect = _client_error("NoSuchKey")
    assert await storage.get_item("k") is None


async def test_get_404_returns_none():
    storage, s3 = _make_storage()
    s3.get_object.side_effect = _client_error("404")
    assert await storage.get_item("k") is None


async def test_get_other_s3_error_raises_storage_error():
    storage, s3 = _make_storage()
    s3.get_object.side_effect = _client_error("InternalError")
    with pytest.raises(StorageError):
        await storage.get_item("k")


async def test_get_generic_exception_raises_storage_error():
    storage, s3 = _make_storage()
    s3.get_object.side_effect = RuntimeError("network failure")
    with pytest.raises(StorageError):
        await storage.get_item("k")


# ---------------------------------------------------------------------------
# set_item()
# ---------------------------------------------------------------------------

async def test_set_puts_utf8_body():
    storage, s3 = _make_storage(prefix="p/")
    await storage.set_item("k", "héllo")

    kwargs = s3.put_object.call_args.kwargs
    assert kwargs["Bucket"] == "my-bucket"
    assert kwargs["Key"] == "p/k"
    assert kwargs["Body"] == "héllo".encode("utf-8")
    assert "IfMatch" not in kwargs


async def test_set_error_raises_storage_error():
    storage, s3 = _make_storage()
    s3.put_object.side_effect = RuntimeError("network failure")
    with pytest.raises(StorageError):
        await storage.set_item("k", "v")


# ---------------------------------------------------------------------------
# remove_item()
# ---------------------------------------------------------------------------

async def test_remove_deletes_object():
    storage, s3 = _make_storage(prefix="p/")
    await storage.remove_item("k")
    s3.delete_object.assert_awaited_once_with(Bucket="my-bucket", Key="p/k")


async def test_remove_missing_is_ignored():
    storage, s3 = _make_storage()
    s3.delete_object.side_effect = _client_error("NoSuchKey")
    await storage.remove_item("k")


async def test_remove_other_error_raises_storage_error():
    storage, s3 = _make_storage()
    s3.delete_object.side_effect = _client_error("AccessDenied")
    with pytest.raises(StorageError):
        await storage.remove_item("k")


# ---------------------------------------------------------------------------
# _client_kwargs()
# ---------------------------------------------------------------------------

def test_client_kwargs_empty_by_default():
    storage = S3Storage(bucket="b")
    assert storage._client_kwargs() == {}


def test_client_kwargs_with_region_and_endpoint():
    storage = S3Storage(
        bucket="b",
        region_name="eu-central-1",
        endpoint_url="http://minio:9000",
    )
    kwargs = storage._client_kwargs()
    assert kwargs["region_name"] == "eu-central-1"
    assert kwargs["endpoint_url"] == "http://minio:9000"


# ---------------------------------------------------------------------------
# _s3_error_code()
# ---------------------------------------------------------------------------

def test_s3_error_code_extracts_code():
    assert _s3_error_code(_client_error("NoSuchKey")) == "NoSuchKey"


def test_s3_error_code_no_response_attr():
    assert _s3_error_code(Exception("plain error")) == ""


def test_s3_error_code_response_not_dict():
    exc = Exception()
    exc.response = "not a dict"  # type: ignore[attr-defined]
    assert _s3_error_code(exc) == ""


def test_s3_error_code_empty_code():
    exc = Exception()
    exc.response = {"Error": {"Code": ""}}  # type: ignore[attr-defined]
    assert _s3_error_code(exc) == ""
