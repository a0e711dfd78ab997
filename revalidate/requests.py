from __future__ import annotations

import logging
from http.client import responses
from io import BytesIO
from typing import Any, Mapping

from revalidate._core._headers import Headers
from revalidate._core._interceptor import CacheInterceptor, CacheOptions, FromCache
from revalidate._core._storages._base import BaseStorage
from revalidate._core.models import Request, RequestMetadata, Response
from revalidate._integrations._base import resolve_response_phase
from revalidate._utils import filter_mapping

try:
    import requests
    from requests.adapters import HTTPAdapter
    from urllib3 import HTTPResponse
except ImportError:  # pragma: no cover
    raise ImportError(
        "The 'requests' library is required to use the requests integration. "
        "Install revalidate with 'pip install revalidate[requests]'."
    )

logger = logging.getLogger("revalidate.requests")

__all__ = ("CacheAdapter",)

_TRUTHY = ("1", "true", "yes", "on")
_FALSY = ("0", "false", "no", "off")
_METADATA_HEADERS = ("X-Revalidate-Disabled", "X-Revalidate-Serve-From-Cache")


def _parse_flag(value: str) -> bool | None:
    value = value.lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    return None


def extract_metadata_from_headers(headers: Mapping[str, str]) -> RequestMetadata:
    metadata: RequestMetadata = {}
    if "X-Revalidate-Disabled" in headers:
        metadata["revalidate_disabled"] = _parse_flag(headers["X-Revalidate-Disabled"])
    if "X-Revalidate-Serve-From-Cache" in headers:
        metadata["revalidate_serve_from_cache"] = _parse_flag(headers["X-Revalidate-Serve-From-Cache"])
    return metadata


def _requests_to_internal(request: requests.PreparedRequest) -> Request:
    assert request.method
    headers = Headers(filter_mapping(request.headers, _METADATA_HEADERS))
    return Request(
        method=request.method,
        url=str(request.url),
        headers=headers,
        metadata=extract_metadata_from_headers(request.headers),
    )


def _internal_to_urllib3(response: Response) -> HTTPResponse:
    return HTTPResponse(
        body=BytesIO(response.content),
        headers=response.headers.multi_items(),
        status=response.status_code,
        reason=responses.get(response.status_code),
        preload_content=False,
        decode_content=True,
    )


class CacheAdapter(HTTPAdapter):
    """
    A `requests` transport adapter that revalidates responses it has seen before.

    Mount it on a session for the prefixes that should be cached:

    ```python
    session = requests.Session()
    session.mount("https://", CacheAdapter(storage=InMemoryStorage()))
    ```

    Per-request switches are read from the `X-Revalidate-Disabled` and
    `X-Revalidate-Serve-From-Cache` request headers, which are not sent to the origin.
    """

    def __init__(
        self,
        storage: BaseStorage,
        options: CacheOptions | None = None,
        pool_connections: int = 10,
        pool_maxsize: int = 10,
        max_retries: int = 0,
        pool_block: bool = False,
    ):
        super().__init__(pool_connections, pool_maxsize, max_retries, pool_block)
        self.interceptor = CacheInterceptor(storage=storage, options=options)
        self.storage = storage

    def send(  # type: ignore[override]
        self,
        request: requests.PreparedRequest,
        stream: bool = False,
        timeout: Any = None,
        verify: bool | str = True,
        cert: Any = None,
        proxies: Mapping[str, str] | None = None,
    ) -> requests.Response:
        state = self.interceptor.on_request(_requests_to_internal(request))

        if isinstance(state, FromCache):
            return self.build_response(request, _internal_to_urllib3(state.response))

        outgoing = request.copy()
        for name in _METADATA_HEADERS:
            outgoing.headers.pop(name, None)
        for name in ("If-None-Match", "If-Modified-Since"):
            if name in state.request.headers and name not in outgoing.headers:
                outgoing.headers[name] = state.request.headers[name]

        response = super().send(
            outgoing,
            stream=True,
            timeout=timeout,
            verify=verify,
            cert=cert,
            proxies=proxies,
        )
        try:
            content = response.raw.read(decode_content=False)
        finally:
            response.close()
        logger.debug(f"Received {response.status_code} for {request.method} {request.url}")

        internal_response = Response(
            status_code=response.status_code,
            headers=Headers(filter_mapping(response.headers, ["transfer-encoding"])),
            content=content,
            request=state.request,
        )
        final_response = resolve_response_phase(self.interceptor.on_response(internal_response))
        return self.build_response(request, _internal_to_urllib3(final_response))

    def close(self) -> None:
        super().close()
        self.storage.close()
