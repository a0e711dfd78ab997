from __future__ import annotations

import logging
import typing as t

import anyio.to_thread
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

__all__ = ("AsyncCacheTransport", "AsyncCacheClient")


async def _collect_body(response: httpx.Response) -> t.Tuple[bytes, bool]:
    if response.is_stream_consumed:
        return response.content, True
    try:
        return b"".join([chunk async for chunk in response.aiter_raw()]), False
    finally:
        await response.aclose()


class AsyncCacheTransport(httpx.AsyncBaseTransport):
    """
    An HTTPX Transport that revalidates responses it has seen before.

    :param next_transport: `Transport` that our class wraps in order to add an HTTP Cache layer on top of
    :type next_transport: httpx.AsyncBaseTransport
    :param storage: Storage that keeps the responses seen so far
    :type storage: BaseStorage
    :param options: Cache behaviour switches, defaults to None
    :type options: t.Optional[CacheOptions], optional
    """

    def __init__(
        self,
        next_transport: httpx.AsyncBaseTransport,
        storage: BaseStorage,
        options: CacheOptions | None = None,
    ) -> None:
        self.next_transport = next_transport
        self.interceptor = CacheInterceptor(storage=storage, options=options)
        self.storage = storage

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        # Storages do blocking I/O, keep them off the event loop
        state = await anyio.to_thread.run_sync(self.interceptor.on_request, httpx_to_internal_request(request))

        if isinstance(state, FromCache):
            return internal_to_httpx_response(state.response)

        response = await self.next_transport.handle_async_request(internal_to_httpx_request(state.request, request))
        content, decoded = await _collect_body(response)
        logger.debug(f"Received {response.status_code} for {request.method} {request.url}")

        internal_response = httpx_to_internal_response(response, content, decoded, state.request)
        result = await anyio.to_thread.run_sync(self.interceptor.on_response, internal_response)
        return internal_to_httpx_response(
            resolve_response_phase(result),
            extensions=response.extensions,
        )

    async def aclose(self) -> None:
        await self.next_transport.aclose()
        await anyio.to_thread.run_sync(self.storage.close)


class AsyncCacheClient(httpx.AsyncClient):
    """
    An `httpx.AsyncClient` whose transports (including proxy mounts) go through the cache.

    Takes every `httpx.AsyncClient` argument plus a keyword-only `storage` and `options`.
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

    def _init_transport(self, *args: t.Any, **kwargs: t.Any) -> httpx.AsyncBaseTransport:
        _transport = super()._init_transport(*args, **kwargs)
        return AsyncCacheTransport(
            next_transport=_transport,
            storage=self.storage,
            options=self.options,
        )

    def _init_proxy_transport(self, *args: t.Any, **kwargs: t.Any) -> httpx.AsyncBaseTransport:
        _transport = super()._init_proxy_transport(*args, **kwargs)  # pragma: no cover
        return AsyncCacheTransport(  # pragma: no cover
            next_transport=_transport,
            storage=self.storage,
            options=self.options,
        )
