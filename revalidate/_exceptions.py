from __future__ import annotations

import typing as tp

if tp.TYPE_CHECKING:  # pragma: no cover
    from revalidate._core.models import Response

__all__ = ("CacheError", "NotModifiedWithoutEntryError")


class CacheError(Exception): ...


class NotModifiedWithoutEntryError(CacheError):
    """
    The origin answered `304 Not Modified` but nothing is stored for the request.

    The empty revalidation response is available as `response`.
    """

    def __init__(self, message: str, response: "Response") -> None:
        super().__init__(message)
        self.response = response
