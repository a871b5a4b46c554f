"""
URL and duration helpers for configuration and role fields.
"""

import re
from typing import Any
from urllib.parse import urlparse

from ..constants import API_ROOT_SEGMENT

_DURATION_PART = re.compile(r"(\d+)(h|m|s)")
_DURATION_UNITS = {"h": 3600, "m": 60, "s": 1}


def is_absolute_url(value: str) -> bool:
    """
    Check that a URL is absolute (has both a scheme and a host).

    Args:
        value: URL string to check

    Returns:
        True when the URL can be used as a request target on its own
    """
    if not value or not isinstance(value, str):
        return False
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return bool(parsed.scheme) and bool(parsed.netloc)


def normalize_base_url(url: str) -> str:
    """
    Strip a trailing API root segment from a configured URL.

    The client expects the platform root (``https://grafana.com/``), while
    operators usually paste the API root (``https://grafana.com/api`` or
    ``https://grafana.com/api/``). The match is case-insensitive; the rest
    of the URL is returned unchanged.

    Args:
        url: Configured base URL, possibly empty

    Returns:
        URL without the trailing ``api`` / ``api/`` segment
    """
    if not url:
        return ""

    lowered = url.lower()
    if lowered.endswith("/" + API_ROOT_SEGMENT):
        return url[: -len(API_ROOT_SEGMENT)]
    if lowered.endswith("/" + API_ROOT_SEGMENT + "/"):
        return url[: -(len(API_ROOT_SEGMENT) + 1)]
    return url


def parse_duration_seconds(value: Any) -> int:
    """
    Parse a TTL field into whole seconds.

    Accepts integers (seconds), numeric strings and Go-style duration
    strings such as ``"120s"``, ``"5m"`` or ``"1h30m"``.

    Args:
        value: Raw field value

    Returns:
        Duration in seconds

    Raises:
        ValueError: If the value is negative or not a recognised duration
    """
    if isinstance(value, bool):
        raise ValueError(f"invalid duration: {value!r}")

    if isinstance(value, int):
        seconds = value
    elif isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"invalid duration: {value!r} is not a whole number of seconds")
        seconds = int(value)
    elif isinstance(value, str):
        text = value.strip().lower()
        if not text:
            raise ValueError("invalid duration: empty string")
        if text.isdigit():
            seconds = int(text)
        else:
            pos = 0
            seconds = 0
            for match in _DURATION_PART.finditer(text):
                if match.start() != pos:
                    raise ValueError(f"invalid duration: {value!r}")
                seconds += int(match.group(1)) * _DURATION_UNITS[match.group(2)]
                pos = match.end()
            if pos != len(text):
                raise ValueError(f"invalid duration: {value!r}")
    else:
        raise ValueError(f"invalid duration: {value!r}")

    if seconds < 0:
        raise ValueError(f"duration must not be negative: {value!r}")
    return seconds
