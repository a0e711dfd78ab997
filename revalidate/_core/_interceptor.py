from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import (
    Iterator,
    List,
    Optional,
    Tuple,
    Union,
)

from revalidate._core._headers import Headers, parse_cache_control, refresh_headers
from revalidate._core._storages._base import BaseStorage
from revalidate._core.models import CacheState, Request, Response, ResponseMetadata
from revalidate._utils import parse_date

logger = logging.getLogger("revalidate.interceptor")

__all__ = (
    "CacheOptions",
    "CacheInterceptor",
    "SendRequest",
    "FromCache",
    "UseResponse",
    "NotModifiedWithoutEntry",
    "RequestPhase",
    "ResponsePhase",
)


@dataclass
class CacheOptions:
    """
    Configuration options for the cache interceptor.

    Attributes:
    ----------
    serve_from_cache : bool
        Whether a fresh stored response is returned without contacting the origin.

        When False, the interceptor only decides which conditional headers to
        attach and every request reaches the transport. When True, a request
        whose key is "fresh" is answered from the storage directly.
        "stale" and "none" keys always reach the transport.

        Can be overridden per request with the `revalidate_serve_from_cache` metadata.

        Default: False

    cacheable_methods : Optional[List[str]]
        HTTP methods that take part in caching. Requests with other methods pass
        through both phases untouched.

        Default: None (every method)

        Examples:
        --------
        >>> # Only GET responses are stored and revalidated
        >>> options = CacheOptions(cacheable_methods=["GET"])

    pass_through_orphan_304 : bool
        What to do with a 304 response for a key that has nothing stored.

        By default the interceptor reports it as `NotModifiedWithoutEntry` and the
        integrations raise `NotModifiedWithoutEntryError`. When True, the empty 304
        is handed to the caller as is.

        Default: False

    status_header : str
        Name of the diagnostic response header carrying the cache state
        ("fresh", "stale" or "none") of the request's key.

        Default: "X-Cache-Status"
    """

    serve_from_cache: bool = False
    cacheable_methods: Optional[List[str]] = None
    pass_through_orphan_304: bool = False
    status_header: str = "X-Cache-Status"


@dataclass
class SendRequest:
    """The request, possibly with conditional headers attached, must be sent by the transport."""

    request: Request


@dataclass
class FromCache:
    """A fresh stored response answers the request; the transport is not called."""

    response: Response


@dataclass
class UseResponse:
    """The response to hand back to the caller."""

    response: Response
    revalidated: bool = False


@dataclass
class NotModifiedWithoutEntry:
    """The origin answered 304 but nothing is stored for the request."""

    response: Response


RequestPhase = Union[SendRequest, FromCache]
ResponsePhase = Union[UseResponse, NotModifiedWithoutEntry]


def get_freshness_window(headers: Headers, now: float) -> Tuple[float, float]:
    """
    Compute the absolute (fresh_until, stale_until) timestamps of a response.

    The window is anchored at the response's Date header, or at `now` when it is
    missing or unparseable. Missing or malformed `max-age` and
    `stale-while-revalidate` directives count as zero seconds, so a response
    without Cache-Control is neither fresh nor stale from the start.
    """
    cache_control = parse_cache_control(headers.get("cache-control"))
    max_age = cache_control.max_age or 0
    stale_while_revalidate = cache_control.stale_while_revalidate or 0

    anchor: float = now
    if "date" in headers:
        date = parse_date(headers["date"])
        if date is not None:
            anchor = date
        else:
            logger.debug(f"Unparseable Date header {headers['date']!r}, anchoring at current time")

    fresh_until = anchor + max_age
    return fresh_until, fresh_until + stale_while_revalidate


def make_conditional_request(request: Request, stored_response: Response) -> Request:
    """
    Attach the validator of a stored response to a request.

    An entity tag is preferred; otherwise the modification time is taken from
    Last-Modified, or from Date when Last-Modified is missing.
    """
    precondition_headers = {}

    if "etag" in stored_response.headers:
        precondition_headers["If-None-Match"] = stored_response.headers["etag"]
    elif "last-modified" in stored_response.headers:
        precondition_headers["If-Modified-Since"] = stored_response.headers["last-modified"]
    elif "date" in stored_response.headers:
        precondition_headers["If-Modified-Since"] = stored_response.headers["date"]

    headers = request.headers.copy()
    for key, value in precondition_headers.items():
        headers[key] = value
    return replace(request, headers=headers)


class CacheInterceptor:
    """
    Decides, around every exchange, how a stored response takes part in it.

    The interceptor performs no I/O of its own: `on_request` runs before the
    transport is called and `on_response` runs on whatever the transport
    returned. Both return explicit result objects.

    :param storage: Storage that keeps the responses seen so far
    :type storage: BaseStorage
    :param options: Behaviour switches, defaults to None
    :type options: Optional[CacheOptions], optional
    """

    def __init__(self, storage: BaseStorage, options: Optional[CacheOptions] = None) -> None:
        if not isinstance(storage, BaseStorage):  # pragma: no cover
            raise TypeError(f"Expected subclass of `BaseStorage` but got `{storage.__class__.__name__}`")

        self.storage = storage
        self.options = options if options is not None else CacheOptions()

    def on_request(self, request: Request) -> RequestPhase:
        if not self._takes_part(request):
            logger.debug(f"Bypassing cache for {request.method} {request.url}")
            return SendRequest(request=request)

        with self._storage_failures("reading", request):
            state = self.storage.status(request)
            stored_response = self.storage.get(request)

        logger.debug(f"Cache state of {request.method} {request.url}: {state}")

        if stored_response is None:
            return SendRequest(request=request)

        if state == "fresh" and self._serve_from_cache(request):
            logger.debug("Serving fresh response from cache")
            return FromCache(
                response=self._annotate(replace(stored_response, request=request), state, from_cache=True)
            )

        if state != "none":
            return SendRequest(request=request)

        if "if-none-match" in request.headers or "if-modified-since" in request.headers:
            logger.debug("Request already carries validators, leaving them untouched")
            return SendRequest(request=request)

        conditional_request = make_conditional_request(request, stored_response)
        validators = [
            f"{name}: {conditional_request.headers[name]}"
            for name in ("If-None-Match", "If-Modified-Since")
            if name in conditional_request.headers
        ]
        if validators:
            logger.debug(f"Revalidating with {', '.join(validators)}")
        return SendRequest(request=conditional_request)

    def on_response(self, response: Response) -> ResponsePhase:
        """
        Store the response and decide what the caller receives.

        A 304 reads the stored entry and writes the merged one back as two separate
        storage calls, so a response stored for the same key in between is overwritten.
        """
        request = response.request
        if request is None:
            raise ValueError("The response must carry its originating request")

        if not self._takes_part(request):
            return UseResponse(response=self._annotate(response, "none"))

        revalidated = False
        final_response = response

        if response.status_code == 304:
            with self._storage_failures("reading", request):
                stored_response = self.storage.get(request)

            if stored_response is None:
                logger.warning(f"Received 304 for {request.method} {request.url} without a stored response")
                if not self.options.pass_through_orphan_304:
                    return NotModifiedWithoutEntry(response=response)
                with self._storage_failures("reading", request):
                    state = self.storage.status(request)
                return UseResponse(response=self._annotate(response, state))

            logger.debug("Replacing 304 response with the stored one")
            final_response = replace(
                stored_response,
                headers=refresh_headers(stored_response.headers, response.headers),
                request=request,
            )
            revalidated = True

        fresh_until, stale_until = get_freshness_window(final_response.headers, time.time())

        with self._storage_failures("storing", request):
            self.storage.store(final_response, fresh_until, stale_until)
            state = self.storage.status(request)

        logger.debug(f"Stored {request.method} {request.url}, now {state}")
        return UseResponse(
            response=self._annotate(final_response, state, revalidated=revalidated),
            revalidated=revalidated,
        )

    def _takes_part(self, request: Request) -> bool:
        if request.metadata.get("revalidate_disabled"):
            return False
        if self.options.cacheable_methods is None:
            return True
        return request.method.upper() in (method.upper() for method in self.options.cacheable_methods)

    def _serve_from_cache(self, request: Request) -> bool:
        override = request.metadata.get("revalidate_serve_from_cache")
        if override is not None:
            return bool(override)
        return self.options.serve_from_cache

    def _annotate(
        self,
        response: Response,
        state: CacheState,
        from_cache: bool = False,
        revalidated: bool = False,
    ) -> Response:
        headers = response.headers.copy()
        headers[self.options.status_header] = state
        metadata: ResponseMetadata = {
            "revalidate_cache_status": state,
            "revalidate_from_cache": from_cache,
            "revalidate_revalidated": revalidated,
        }
        return replace(response, headers=headers, metadata={**response.metadata, **metadata})

    @contextmanager
    def _storage_failures(self, action: str, request: Request) -> Iterator[None]:
        try:
            yield
        except Exception:
            logger.error(
                f"Storage failure while {action} the entry for {request.method} {request.url}",
                exc_info=True,
            )
            raise
