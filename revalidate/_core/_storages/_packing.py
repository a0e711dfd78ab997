from __future__ import annotations

from typing import Any, Mapping, Optional, cast

import msgpack

from revalidate._core._headers import Headers
from revalidate._core.models import Request, Response


def filter_out_revalidate_metadata(data: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if not k.startswith("revalidate_")}


def pack(value: Response, /) -> bytes:
    request = value.request
    return cast(
        bytes,
        msgpack.packb(
            {
                "request": (
                    {
                        "method": request.method,
                        "url": request.url,
                        "headers": request.headers._headers,
                        "extra": filter_out_revalidate_metadata(request.metadata),
                    }
                    if request is not None
                    else None
                ),
                "response": {
                    "status_code": value.status_code,
                    "headers": value.headers._headers,
                    "content": value.content,
                    "extra": filter_out_revalidate_metadata(value.metadata),
                },
            },
            use_bin_type=True,
        ),
    )


def unpack(value: Optional[bytes], /) -> Optional[Response]:
    if value is None:
        return None

    data = msgpack.unpackb(value, raw=False)
    request_data = data["request"]
    response_data = data["response"]

    request = (
        Request(
            method=request_data["method"],
            url=request_data["url"],
            headers=Headers(request_data["headers"]),
            metadata=request_data["extra"],
        )
        if request_data is not None
        else None
    )
    return Response(
        status_code=response_data["status_code"],
        headers=Headers(response_data["headers"]),
        content=response_data["content"],
        request=request,
        metadata=response_data["extra"],
    )
