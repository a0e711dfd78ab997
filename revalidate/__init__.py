from revalidate._core._headers import Headers as Headers, parse_cache_control as parse_cache_control
from revalidate._core._interceptor import (
    CacheInterceptor as CacheInterceptor,
    CacheOptions as CacheOptions,
    FromCache as FromCache,
    NotModifiedWithoutEntry as NotModifiedWithoutEntry,
    RequestPhase as RequestPhase,
    ResponsePhase as ResponsePhase,
    SendRequest as SendRequest,
    UseResponse as UseResponse,
)
from revalidate._core._storages._base import BaseStorage as BaseStorage
from revalidate._core._storages._memory import InMemoryStorage as InMemoryStorage
from revalidate._core._storages._sqlite import SqliteStorage as SqliteStorage
from revalidate._core.models import (
    CacheEntry as CacheEntry,
    CacheState as CacheState,
    Request as Request,
    RequestMetadata as RequestMetadata,
    Response as Response,
    ResponseMetadata as ResponseMetadata,
)
from revalidate._exceptions import CacheError as CacheError, NotModifiedWithoutEntryError as NotModifiedWithoutEntryError

__all__ = (
    ## Interceptor
    "CacheInterceptor",
    "CacheOptions",
    "SendRequest",
    "FromCache",
    "UseResponse",
    "NotModifiedWithoutEntry",
    "RequestPhase",
    "ResponsePhase",
    ## Models
    "Request",
    "Response",
    "RequestMetadata",
    "ResponseMetadata",
    "CacheEntry",
    "CacheState",
    ## Headers
    "Headers",
    "parse_cache_control",
    ## Storages
    "BaseStorage",
    "InMemoryStorage",
    "SqliteStorage",
    ## Exceptions
    "CacheError",
    "NotModifiedWithoutEntryError",
)

__version__ = "0.1.0"
