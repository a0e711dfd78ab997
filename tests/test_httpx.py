from __future__ import annotations

import gzip
import sqlite3
from typing import List

import httpx
import pytest
from httpx import MockTransport
from inline_snapshot import snapshot
from time_machine import travel

from revalidate import CacheOptions, InMemoryStorage, NotModifiedWithoutEntryError, SqliteStorage
from revalidate.httpx import CacheClient, CacheTransport
from tests._helpers import EPOCH, EPOCH_HTTP_DATE

URL = "https://example.com/"


class Origin:
    """Answers 304 whenever the request carries the current ETag."""

    def __init__(self, headers: dict[str, str] | None = None, content: bytes = b"hello") -> None:
        self.headers = {"ETag": '"v1"', "Date": EPOCH_HTTP_DATE, **(headers or {})}
        self.content = content
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.headers.get("If-None-Match") == self.headers["ETag"]:
            return httpx.Response(304, headers={"ETag": self.headers["ETag"], "Date": self.headers["Date"]})
        return httpx.Response(200, headers=self.headers, content=self.content)


@travel(EPOCH, tick=False)
def test_revalidation(caplog: pytest.LogCaptureFixture) -> None:
    origin = Origin()
    client = CacheClient(storage=InMemoryStorage(), transport=MockTransport(origin))

    with caplog.at_level("DEBUG", logger="revalidate"):
        first = client.get(URL)
        second = client.get(URL)

    assert "If-None-Match" not in origin.requests[0].headers
    assert origin.requests[1].headers["If-None-Match"] == '"v1"'
    assert first.status_code == 200
    assert first.headers["X-Cache-Status"] == "none"
    assert second.status_code == 200
    assert second.content == b"hello"
    assert second.headers["X-Cache-Status"] == "none"
    assert second.extensions["revalidate_revalidated"] is True
    assert second.extensions["revalidate_from_cache"] is False
    assert caplog.messages == snapshot(
        [
            "Cache state of GET https://example.com/: none",
            "Received 200 for GET https://example.com/",
            "Stored entry 'GET#https://example.com/' (fresh until 1704067200, stale until 1704067200)",
            "Stored GET https://example.com/, now none",
            "Cache state of GET https://example.com/: none",
            'Revalidating with If-None-Match: "v1"',
            "Received 304 for GET https://example.com/",
            "Replacing 304 response with the stored one",
            "Stored entry 'GET#https://example.com/' (fresh until 1704067200, stale until 1704067200)",
            "Stored GET https://example.com/, now none",
        ]
    )


def test_status_header_over_time() -> None:
    origin = Origin(headers={"Cache-Control": "max-age=10, stale-while-revalidate=10"})
    client = CacheClient(storage=InMemoryStorage(), transport=MockTransport(origin))

    with travel(EPOCH, tick=False) as traveller:
        statuses = []
        for offset in (0, 5, 15, 25):
            traveller.move_to(EPOCH + offset)
            statuses.append(client.get(URL).headers["X-Cache-Status"])

    # The origin never updates its Date header, so the revalidated entry is already expired
    assert statuses == ["fresh", "fresh", "stale", "none"]
    assert [request.headers.get("If-None-Match") for request in origin.requests] == [None, None, None, '"v1"']


@travel(EPOCH, tick=False)
def test_decoded_body_is_stored() -> None:
    origin = Origin(headers={"Content-Encoding": "gzip"}, content=gzip.compress(b"hello"))
    client = CacheClient(storage=InMemoryStorage(), transport=MockTransport(origin))

    client.get(URL)
    response = client.get(URL)

    assert response.extensions["revalidate_revalidated"] is True
    assert response.content == b"hello"
    assert "content-encoding" not in response.headers
    assert response.headers["content-length"] == "5"


@travel(EPOCH, tick=False)
def test_not_modified_without_entry() -> None:
    client = CacheClient(
        storage=InMemoryStorage(),
        transport=MockTransport(lambda request: httpx.Response(304)),
    )

    with pytest.raises(NotModifiedWithoutEntryError) as exc_info:
        client.get(URL)

    assert exc_info.value.response.status_code == 304


@travel(EPOCH, tick=False)
def test_not_modified_without_entry_passed_through() -> None:
    client = CacheClient(
        storage=InMemoryStorage(),
        options=CacheOptions(pass_through_orphan_304=True),
        transport=MockTransport(lambda request: httpx.Response(304)),
    )

    response = client.get(URL)

    assert response.status_code == 304
    assert response.content == b""
    assert response.headers["X-Cache-Status"] == "none"


@travel(EPOCH, tick=False)
def test_serve_from_cache() -> None:
    origin = Origin(headers={"Cache-Control": "max-age=60"})
    client = CacheClient(
        storage=InMemoryStorage(),
        options=CacheOptions(serve_from_cache=True),
        transport=MockTransport(origin),
    )

    client.get(URL)
    response = client.get(URL)

    assert len(origin.requests) == 1
    assert response.content == b"hello"
    assert response.extensions["revalidate_from_cache"] is True
    assert response.headers["X-Cache-Status"] == "fresh"


@travel(EPOCH, tick=False)
def test_serve_from_cache_extension() -> None:
    origin = Origin(headers={"Cache-Control": "max-age=60"})
    client = CacheClient(storage=InMemoryStorage(), transport=MockTransport(origin))

    client.get(URL)
    client.get(URL)
    response = client.get(URL, extensions={"revalidate_serve_from_cache": True})

    assert len(origin.requests) == 2
    assert response.extensions["revalidate_from_cache"] is True


@travel(EPOCH, tick=False)
def test_disabled_extension() -> None:
    origin = Origin()
    client = CacheClient(storage=InMemoryStorage(), transport=MockTransport(origin))

    client.get(URL)
    response = client.get(URL, extensions={"revalidate_disabled": True})

    assert "If-None-Match" not in origin.requests[1].headers
    assert response.headers["X-Cache-Status"] == "none"
    assert response.extensions["revalidate_revalidated"] is False


@travel(EPOCH, tick=False)
def test_request_body_is_forwarded() -> None:
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(request.content)
        return httpx.Response(201, content=b"created")

    client = CacheClient(storage=InMemoryStorage(), transport=MockTransport(handler))

    response = client.post(URL, content=b"payload")

    assert bodies == [b"payload"]
    assert response.status_code == 201
    assert response.text == "created"


@travel(EPOCH, tick=False)
def test_transport_with_sqlite_storage() -> None:
    origin = Origin()
    storage = SqliteStorage(connection=sqlite3.connect(":memory:"))
    transport = CacheTransport(next_transport=MockTransport(origin), storage=storage)

    with httpx.Client(transport=transport) as client:
        client.get(URL)
        response = client.get(URL)

        assert response.content == b"hello"
        assert response.extensions["revalidate_revalidated"] is True

    assert storage.connection is None


@travel(EPOCH, tick=False)
def test_undecodable_cache_control_counts_as_zero() -> None:
    client = CacheClient(
        storage=InMemoryStorage(),
        transport=MockTransport(
            lambda request: httpx.Response(
                200,
                headers=[(b"Date", EPOCH_HTTP_DATE.encode()), (b"Cache-Control", b"max-age=\xb2")],
                content=b"hello",
            )
        ),
    )

    response = client.get(URL)

    assert response.status_code == 200
    assert response.headers["X-Cache-Status"] == "none"
    assert response.headers["Cache-Control"] == "max-age=\u00b2"
