from __future__ import annotations

from typing import (
    Any,
    Iterable,
    Iterator,
    List,
    Mapping,
    MutableMapping,
    Optional,
    Tuple,
    Union,
)

__all__ = (
    "Headers",
    "CacheControl",
    "parse_cache_control",
    "refresh_headers",
)

# Largest value accepted for delta-seconds (RFC 9111, Section 1.2.2)
MAX_DELTA_SECONDS = 2147483648

HeaderTypes = Union[
    Mapping[str, Union[str, List[str]]],
    Iterable[Tuple[str, str]],
]


def is_token(c: str) -> bool:
    """
    Check if character is valid in an HTTP token.

    Per RFC 7230 Section 3.2.6:
    tchar = "!" / "#" / "$" / "%" / "&" / "'" / "*"
          / "+" / "-" / "." / "0"-"9" / "A"-"Z"
          / "^" / "_" / "`" / "a"-"z" / "|" / "~"

    Examples:
        >>> is_token('a')
        True
        >>> is_token('-')
        True
        >>> is_token(',')
        False
        >>> is_token('=')
        False
    """
    if not c:
        return False
    b = ord(c)
    return 0x20 < b < 0x7F and c not in '()<>@,;:\\"/[]?={}'


class Headers(MutableMapping[str, str]):
    """
    Case-insensitive, multi-valued header mapping.

    Item access joins repeated fields with ", ". Assigning a key replaces every
    value stored under it; use `add` to append another field line.
    """

    def __init__(self, headers: Optional[HeaderTypes] = None) -> None:
        self._headers: dict[str, List[str]] = {}

        if headers is None:
            return

        if isinstance(headers, Headers):
            self._headers = {k: v[:] for k, v in headers._headers.items()}
        elif isinstance(headers, Mapping):
            for key, value in headers.items():
                values = [value] if isinstance(value, str) else list(value)
                self._headers.setdefault(key.lower(), []).extend(values)
        else:
            for key, value in headers:
                self.add(key, value)

    def add(self, key: str, value: str) -> None:
        self._headers.setdefault(key.lower(), []).append(value)

    def get_list(self, key: str) -> Optional[List[str]]:
        return self._headers.get(key.lower(), None)

    def multi_items(self) -> List[Tuple[str, str]]:
        return [(key, value) for key, values in self._headers.items() for value in values]

    def copy(self) -> "Headers":
        return Headers(self)

    def __getitem__(self, key: str) -> str:
        return ", ".join(self._headers[key.lower()])

    def __setitem__(self, key: str, value: str) -> None:
        self._headers[key.lower()] = [value]

    def __delitem__(self, key: str) -> None:
        del self._headers[key.lower()]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._headers

    def __iter__(self) -> Iterator[str]:
        return iter(self._headers)

    def __len__(self) -> int:
        return len(self._headers)

    def __repr__(self) -> str:
        return f"Headers({self._headers!r})"

    def __eq__(self, other_headers: Any) -> bool:
        return isinstance(other_headers, Headers) and self._headers == other_headers._headers


def refresh_headers(stored_headers: Headers, new_headers: Headers) -> Headers:
    """
    Update the stored response headers with the fields of a validation response.

    Every field present in `new_headers` replaces the stored one, except
    Content-Length which describes the stored body and is kept as is.
    (RFC 9111, Section 3.2)
    """
    updated = stored_headers.copy()

    for key in new_headers:
        if key == "content-length":
            continue
        updated._headers[key] = new_headers.get_list(key)[:]  # type: ignore[index]
    return updated


class CacheControl:
    """
    The Cache-Control response directives that drive freshness.

    Unknown directives are kept in `extensions`. Every time-valued directive is
    None when absent or malformed.
    """

    def __init__(self) -> None:
        self.max_age: Optional[int] = None
        self.s_maxage: Optional[int] = None
        self.stale_while_revalidate: Optional[int] = None
        self.stale_if_error: Optional[int] = None

        self.no_cache: bool = False
        self.no_store: bool = False
        self.must_revalidate: bool = False
        self.immutable: bool = False

        self.extensions: List[str] = []

    def __repr__(self) -> str:
        fields = [
            f"{name}={value}"
            for name, value in (
                ("max_age", self.max_age),
                ("s_maxage", self.s_maxage),
                ("stale_while_revalidate", self.stale_while_revalidate),
                ("stale_if_error", self.stale_if_error),
            )
            if value is not None
        ]
        fields.extend(
            name
            for name in ("no_cache", "no_store", "must_revalidate", "immutable")
            if getattr(self, name)
        )
        return f"<{type(self).__name__} {', '.join(fields)}>"


def parse_delta_seconds(value: str) -> Optional[int]:
    """Parse a non-negative delta-seconds value, return None if invalid."""
    if not (value.isascii() and value.isdigit()):
        return None
    return min(int(value), MAX_DELTA_SECONDS)


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == '"' and value[-1] == '"':
        return value[1:-1].replace('\\"', '"')
    return value


def _split_directives(value: str) -> Iterator[str]:
    # Commas inside quoted strings do not separate directives.
    start = 0
    in_quotes = False
    escaped = False

    for i, c in enumerate(value):
        if escaped:
            escaped = False
        elif c == "\\" and in_quotes:
            escaped = True
        elif c == '"':
            in_quotes = not in_quotes
        elif c == "," and not in_quotes:
            yield value[start:i]
            start = i + 1
    yield value[start:]


def parse(value: str) -> CacheControl:
    cc = CacheControl()

    for directive in _split_directives(value):
        directive = directive.strip(" \t")
        if not directive:
            continue

        name, sep, argument = directive.partition("=")
        name = name.strip(" \t").lower()

        if not name or not all(is_token(c) for c in name):
            # Skip garbage instead of failing the whole header
            continue

        if sep:
            handle_directive_with_value(cc, name, _unquote(argument.strip(" \t")))
        else:
            handle_directive_without_value(cc, name)

    return cc


def handle_directive_with_value(cc: CacheControl, token: str, value: str) -> None:
    if token == "max-age":
        cc.max_age = parse_delta_seconds(value)
    elif token == "s-maxage":
        cc.s_maxage = parse_delta_seconds(value)
    elif token == "stale-while-revalidate":
        cc.stale_while_revalidate = parse_delta_seconds(value)
    elif token == "stale-if-error":
        cc.stale_if_error = parse_delta_seconds(value)
    else:
        # Includes field-name forms like no-cache="Set-Cookie"
        cc.extensions.append(f"{token}={value}")


def handle_directive_without_value(cc: CacheControl, token: str) -> None:
    if token == "no-cache":
        cc.no_cache = True
    elif token == "no-store":
        cc.no_store = True
    elif token == "must-revalidate":
        cc.must_revalidate = True
    elif token == "immutable":
        cc.immutable = True
    else:
        cc.extensions.append(token)


def parse_cache_control(value: str | None) -> CacheControl:
    """
    Parse a Cache-Control header value.

    The parser never raises: malformed directives are skipped and
    malformed delta-seconds are treated as absent.

    Examples:
        >>> cc = parse_cache_control("public, max-age=3600, stale-while-revalidate=60")
        >>> cc.max_age
        3600
        >>> cc.stale_while_revalidate
        60

        >>> parse_cache_control("max-age=soon").max_age is None
        True
    """
    if value is None:
        return CacheControl()
    return parse(value)
