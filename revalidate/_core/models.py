from __future__ import annotations

from dataclasses import dataclass, field
from typing import (
    Any,
    Literal,
    Mapping,
    Optional,
    TypedDict,
)

from revalidate._core._headers import Headers

CacheState = Literal["fresh", "stale", "none"]


class RequestMetadata(TypedDict, total=False):
    # All the names here should be prefixed with "revalidate_" to avoid collisions with user data
    revalidate_serve_from_cache: bool | None
    """When True, a fresh stored response is returned without contacting the origin."""

    revalidate_disabled: bool | None
    """When True, the request bypasses the cache entirely."""


class ResponseMetadata(TypedDict, total=False):
    # All the names here should be prefixed with "revalidate_" to avoid collisions with user data
    revalidate_cache_status: CacheState
    """Cache state of the request's key after the response was handled."""

    revalidate_from_cache: bool
    """Indicates whether the response was served from cache."""

    revalidate_revalidated: bool
    """Indicates whether a 304 revalidation response was replaced by the stored one."""


@dataclass
class Request:
    method: str
    url: str
    headers: Headers = field(default_factory=Headers)
    metadata: RequestMetadata | Mapping[str, Any] = field(default_factory=dict)


@dataclass
class Response:
    status_code: int
    headers: Headers = field(default_factory=Headers)
    content: bytes = b""
    request: Optional[Request] = None
    metadata: ResponseMetadata | Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CacheEntry:
    response: Response
    fresh_until: float
    stale_until: float

    def __post_init__(self) -> None:
        if self.stale_until < self.fresh_until:
            raise ValueError(
                f"stale_until ({self.stale_until}) must not precede fresh_until ({self.fresh_until})"
            )

    def state(self, now: float) -> CacheState:
        """
        Classify the entry at `now`.

        The state moves from "fresh" to "stale" to "none" as time passes and never goes back.
        """
        if now < self.fresh_until:
            return "fresh"
        if now < self.stale_until:
            return "stale"
        return "none"
