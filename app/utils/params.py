import re
from typing import Any, Optional

_INTEGER = re.compile(r"[+-]?[0-9]+")


def is_missing(value: Any) -> bool:
    """Absent, empty or zero request values count as not supplied."""
    return value is None or value == "" or value == 0


def parse_int(value: Any) -> Optional[int]:
    """Integer from an int, an integral float or a string of digits; else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str) and _INTEGER.fullmatch(value.strip()):
        return int(value.strip())
    return None
