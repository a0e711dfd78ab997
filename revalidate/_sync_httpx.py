from __future__ import annotations

import logging
import typing as t

import httpx

from revalidate._core._interceptor import CacheInterceptor, CacheOptions, FromCache
from revalidate._core._storages._base import BaseStorage
from revalidate._integrations._base import resolve_response_phase
from revalidate._integrations._httpx import (
    httpx_to_internal_request,
    httpx_to_internal_response,
    internal_to_httpx_request,
    internal_to_httpx_response,
)

logger = logging.getLogger("revalidate.httpx")

__all__ = ("CacheTransport", "CacheClient")


def _collect_body(response: httpx.Response) -> t.Tuple[bytes, bool]:
    if response.is_stream_consumed:
        return response.content, True
    try:
        return b"".join(response.iter_raw()), False
    finally:
        response.close()


class CacheTransport(httpx.BaseTransport):
    """
    An HTTPX Transport that revalidates responses it has seen before.

    :param next_transport: `Transport` that our class wraps in order to add an HTTP Cache layer on top of
    :type next_transport: httpx.BaseTransport
    :param storage: Storage that keeps the responses seen so far
    :type storage: BaseStorage
    :param options: Cache behaviour switches, defaults to None
    :type options: t.Optional[CacheOptions], optional
    """

    def __init__(
        self,
        next_transport: httpx.BaseTransport,
        storage: BaseStorage,
        options: CacheOptions | None = None,
    ) -> None:
        self.next_transport = next_transport
        self.interceptor = CacheInterceptor(storage=storage, options=options)
        self.storage = storage

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        state = self.interceptor.on_request(httpx_to_internal_request(request))

        if isinstance(state, FromCache):
            return internal_to_httpx_response(state.response)

        response = self.next_transport.handle_request(internal_to_httpx_request(state.request, request))
        content, decoded = _collect_body(response)
        logger.debug(f"Received {response.status_code} for {request.method} {request.url}")

        internal_response = httpx_to_internal_response(response, content, decoded, state.request)
        return internal_to_httpx_response(
            resolve_response_phase(self.interceptor.on_response(internal_response)),
            extensions=response.extensions,
        )

    def close(self) -> None:
        self.next_transport.close()
        self.storage.close()


class CacheClient(httpx.Client):
    """
    An `httpx.Client` whose transports (including proxy mounts) go through the cache.

    Takes every `httpx.Client` argument plus a keyword-only `storage` and `options`.
    """

    def __init__(
        self,
        *args: t.Any,
        storage: BaseStorage,
        options: CacheOptions | None = None,
        **kwargs: t.Any,
    ) -> None:
        self.storage = storage
        self.options = options
        super().__init__(*args, **kwargs)

    def _init_transport(self, *args: t.Any, **kwargs: t.Any) -> httpx.BaseTransport:
        _transport = super()._init_transport(*args, **kwargs)
        return CacheTransport(
            next_transport=_transport,
            storage=self.storage,
            options=self.options,
        )

    def _init_proxy_transport(self, *args: t.Any, **kwargs: t.Any) -> httpx.BaseTransport:
        _transport = super()._init_proxy_transport(*args, **kwargs)  # pragma: no cover
        return CacheTransport(  # pragma: no cover
            next_transport=_transport,
            storage=self.storage,
            options=self.options,
        )
