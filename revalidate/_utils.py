from __future__ import annotations

import calendar
import typing as tp
from email.utils import parsedate_tz
from pathlib import Path

T = tp.TypeVar("T")


def parse_date(date: str) -> tp.Optional[int]:
    try:
        expires = parsedate_tz(date)
        if expires is None:
            return None
        timestamp = calendar.timegm(expires[:6]) - (expires[9] or 0)
    except (ValueError, OverflowError):
        return None
    return timestamp


def filter_mapping(mapping: tp.Mapping[str, T], keys_to_exclude: tp.Iterable[str]) -> tp.Dict[str, T]:
    """
    Filter out specified keys from a string-keyed mapping using case-insensitive comparison.

    Example:
    ```python
        original = {'a': 1, 'B': 2, 'c': 3}
        filtered = filter_mapping(original, ['b'])
        # filtered will be {'a': 1, 'c': 3}
    ```
    """
    exclude_set = {k.lower() for k in keys_to_exclude}
    return {k: v for k, v in mapping.items() if k.lower() not in exclude_set}


def ensure_cache_dict(base_path: Path | None = None) -> Path:
    _base_path = base_path if base_path is not None else Path(".cache/revalidate")
    _gitignore_file = _base_path / ".gitignore"

    _base_path.mkdir(parents=True, exist_ok=True)

    if not _gitignore_file.is_file():
        with open(_gitignore_file, "w", encoding="utf-8") as f:
            f.write("# Automatically created by revalidate\n*")
    return _base_path
