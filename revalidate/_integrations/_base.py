from __future__ import annotations

from typing_extensions import assert_never

from revalidate._core._interceptor import NotModifiedWithoutEntry, ResponsePhase, UseResponse
from revalidate._core.models import Response
from revalidate._exceptions import NotModifiedWithoutEntryError

# Request metadata keys accepted from the transport's per-request options
REQUEST_METADATA_KEYS = ("revalidate_serve_from_cache", "revalidate_disabled")


def resolve_response_phase(state: ResponsePhase) -> Response:
    """Turn the result of the response phase into the response for the caller, or raise."""
    if isinstance(state, UseResponse):
        return state.response
    elif isinstance(state, NotModifiedWithoutEntry):
        request = state.response.request
        target = f"{request.method} {request.url}" if request is not None else "an unknown request"
        raise NotModifiedWithoutEntryError(
            f"Received 304 Not Modified for {target}, but no response is stored for it",
            response=state.response,
        )
    else:
        assert_never(state)
