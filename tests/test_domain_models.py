from datetime import timedelta

import pytest
from pydantic import ValidationError

from eventq.domain.models import Endpoint, TrackingList

# ---------------------------------------------------------------------------
# TrackingList
# ---------------------------------------------------------------------------


def test_empty_tracking_list():
    tracking = TrackingList()
    assert tracking.is_empty
    assert tracking.first is None


def test_first_is_head():
    assert TrackingList(ids=("a", "b")).first == "a"


def test_with_appended_keeps_order():
    tracking = TrackingList(ids=("a",)).with_appended(["b", "c"])
    assert tracking.ids == ("a", "b", "c")


def test_with_appended_returns_new_instance():
    original = TrackingList(ids=("a",))
    original.with_appended(["b"])
    assert original.ids == ("a",)


def test_without_first():
    assert TrackingList(ids=("a", "b")).without_first().ids == ("b",)


def test_without_first_on_empty_stays_empty():
    assert TrackingList().without_first().is_empty


def test_tracking_list_is_frozen():
    tracking = TrackingList()
    with pytest.raises(ValidationError):
        tracking.ids = ("x",)  # type: ignore[misc]


# ---------------------------------------------------------------------------
# Endpoint
# ---------------------------------------------------------------------------


def test_endpoint_defaults():
    endpoint = Endpoint(uri="https://logs.example.com/ingest")
    assert endpoint.headers == {}
    assert endpoint.timeout == timedelta(seconds=10)
    assert endpoint.transform is None


@pytest.mark.parametrize("uri", ["", "ftp://x", "logs.example.com"])
def test_endpoint_rejects_non_http_uri(uri):
    with pytest.raises(ValidationError):
        Endpoint(uri=uri)


def test_endpoint_rejects_non_string_uri():
    with pytest.raises(ValidationError):
        Endpoint(uri=12345)  # type: ignore[arg-type]


def test_render_headers_defaults():
    headers = Endpoint(uri="http://x").render_headers(None)
    assert headers == {
        "Accept": "application/json",
        "Content-Type": "application/json",
    }


def test_render_headers_resolves_values():
    endpoint = Endpoint(
        uri="http://x",
        headers={
            "Authorization": lambda state: f"Bearer {state['token']}",
            "X-Debug": False,
            "Accept": "text/plain",
        },
    )
    headers = endpoint.render_headers({"token": "t0k"})
    assert headers["Authorization"] == "Bearer t0k"
    assert headers["X-Debug"] == "false"
    assert headers["Accept"] == "text/plain"
