from __future__ import annotations

import abc
import time
import typing as tp
from abc import ABC
from dataclasses import replace

from revalidate._core.models import CacheEntry, CacheState, Request, Response


class BaseStorage(ABC):
    """
    Keeps the last response seen for every request identity, together with
    the absolute timestamps until which it is fresh and stale.

    Subclasses implement `store`, `get_entry` and `close`. Key derivation,
    classification and retrieval are built on top of them and may be overridden.
    """

    def get_key(self, request: Request) -> str:
        """
        Derive the cache key of a request.

        Requests with the same method and URL share a key and overwrite each other.
        """
        return f"{request.method}#{request.url}"

    @abc.abstractmethod
    def store(self, response: Response, fresh_until: float, stale_until: float) -> None:
        """
        Insert or replace the entry for the request that produced `response`.

        Args:
            response: The response to keep. `response.request` must be set, the key is derived from it.
            fresh_until: POSIX timestamp until which the response is fresh.
            stale_until: POSIX timestamp until which the response may be served stale.
                Must not be earlier than `fresh_until`.

        Raises:
            NotImplementedError: Must be implemented in subclasses.
        """
        raise NotImplementedError()

    @abc.abstractmethod
    def get_entry(self, request: Request) -> tp.Optional[CacheEntry]:
        """
        Retrieve the whole entry stored for the request's key, or None.

        Raises:
            NotImplementedError: Must be implemented in subclasses.
        """
        raise NotImplementedError()

    def status(self, request: Request) -> CacheState:
        entry = self.get_entry(request)
        if entry is None:
            return "none"
        return entry.state(time.time())

    def get(self, request: Request) -> tp.Optional[Response]:
        entry = self.get_entry(request)
        return entry.response if entry is not None else None

    def close(self) -> None:  # pragma: no cover
        return

    def _key_for_response(self, response: Response) -> str:
        if response.request is None:
            raise ValueError("Cannot store a response without its originating request")
        return self.get_key(response.request)


def clone_response(response: Response) -> Response:
    """Copy a response so that later header mutations do not leak into (or out of) a storage."""
    request = response.request
    if request is not None:
        request = replace(request, headers=request.headers.copy(), metadata=dict(request.metadata))
    return replace(
        response,
        headers=response.headers.copy(),
        request=request,
        metadata=dict(response.metadata),
    )
