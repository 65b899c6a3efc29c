"""
Environment variable utilities for reliable configuration handling.

Boolean parsing is shared with the YAML config loader so that "false" means
false whether it comes from export.yml or the environment.
"""
import os
from typing import Optional

_TRUE = {"1", "true", "t", "yes", "y", "on"}
_FALSE = {"0", "false", "f", "no", "n", "off", ""}


def parse_bool(value: str) -> Optional[bool]:
    """
    Parse a boolean word; None if it is neither true nor false.

    Examples:
        >>> parse_bool(" Yes "), parse_bool("off"), parse_bool("maybe")
        (True, False, None)
    """
    word = str(value).strip().lower()
    if word in _TRUE:
        return True
    if word in _FALSE:
        return False
    return None


def env_bool(name: str, default: bool = False) -> bool:
    """Parse environment variable as boolean; unrecognised words count as false."""
    v = os.getenv(name)
    return default if v is None else parse_bool(v) is True


def env_str(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return v if v is not None else default


def env_int(name: str, default: Optional[int] = None) -> Optional[int]:
    """Parse environment variable as integer; blank or invalid values fall back to default."""
    v = os.getenv(name)
    if v is None or not str(v).strip():
        return default
    try:
        return int(str(v).strip())
    except ValueError:
        return default
