try:
    import httpx  # noqa: F401
except ImportError as e:  # pragma: no cover
    raise ImportError(
        "httpx is required to use revalidate.httpx module. "
        "Please install it with 'pip install httpx'."
    ) from e


from ._async_httpx import AsyncCacheClient as AsyncCacheClient, AsyncCacheTransport as AsyncCacheTransport
from ._sync_httpx import CacheClient as CacheClient, CacheTransport as CacheTransport

__all__ = (
    "AsyncCacheClient",
    "AsyncCacheTransport",
    "CacheClient",
    "CacheTransport",
)
