from __future__ import annotations

from typing import Any, List, Mapping, Optional, Tuple

import httpx

from revalidate._core._headers import Headers
from revalidate._core.models import Request, Response
from revalidate._integrations._base import REQUEST_METADATA_KEYS


def _encode_headers(headers: Headers) -> List[Tuple[bytes, bytes]]:
    # httpx encodes str header values as ascii; utf-8 round-trips values it decoded as utf-8 or latin-1
    return [(key.encode("utf-8"), value.encode("utf-8")) for key, value in headers.multi_items()]


def httpx_to_internal_request(request: httpx.Request) -> Request:
    """
    Convert an httpx.Request to an internal Request.

    The body is not copied; it stays with the httpx request and is sent from there.
    """
    return Request(
        method=request.method,
        url=str(request.url),
        headers=Headers(request.headers.multi_items()),
        metadata={key: request.extensions[key] for key in REQUEST_METADATA_KEYS if key in request.extensions},
    )


def internal_to_httpx_request(request: Request, original: httpx.Request) -> httpx.Request:
    """
    Rebuild the outgoing httpx.Request with the headers chosen by the request phase.
    """
    return httpx.Request(
        method=request.method,
        url=original.url,
        headers=_encode_headers(request.headers),
        stream=original.stream,
        extensions=original.extensions,
    )


def httpx_to_internal_response(
    response: httpx.Response,
    content: bytes,
    decoded: bool,
    request: Request,
) -> Response:
    """
    Convert an httpx.Response whose body has been collected to an internal Response.

    `content` is the raw body unless `decoded` is set, in which case the
    transport already consumed and decoded the stream. Content-Encoding and
    Content-Length are then fixed to describe the decoded bytes so the response
    can be rebuilt later.
    """
    excluded = ["transfer-encoding"]
    if decoded:
        excluded += ["content-encoding", "content-length"]

    headers: List[Tuple[str, str]] = [
        (key, value) for key, value in response.headers.multi_items() if key.lower() not in excluded
    ]
    if decoded:
        headers.append(("content-length", str(len(content))))

    return Response(
        status_code=response.status_code,
        headers=Headers(headers),
        content=content,
        request=request,
    )


def internal_to_httpx_response(response: Response, extensions: Optional[Mapping[str, Any]] = None) -> httpx.Response:
    return httpx.Response(
        status_code=response.status_code,
        headers=_encode_headers(response.headers),
        stream=httpx.ByteStream(response.content),
        extensions={**(extensions or {}), **response.metadata},
    )
