"""Built-in ``$``-prefixed variables generated fresh on every use."""

from __future__ import annotations

import random
import re
import time
import uuid
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime

RANDOM_INT_PATTERN = re.compile(r"^\$randomInt(?:\s+(-?\d+)\s+(-?\d+))?$")
DATETIME_PATTERN = re.compile(r"^\$datetime(?:\s+(iso8601|rfc1123)(?:\s+(-?\d+))?)?$")

DEFAULT_RANDOM_MIN = 0
DEFAULT_RANDOM_MAX = 1000


def generate_guid() -> str:
    return str(uuid.uuid4())


def generate_timestamp() -> str:
    """Current Unix time in whole seconds."""
    return str(int(time.time()))


def generate_random_int(minimum: int = DEFAULT_RANDOM_MIN, maximum: int = DEFAULT_RANDOM_MAX) -> str:
    """Random integer in ``[minimum, maximum]``, both ends inclusive."""
    if minimum > maximum:
        minimum, maximum = maximum, minimum
    return str(random.randint(minimum, maximum))


def generate_datetime(fmt: str = "iso8601", offset_ms: int = 0) -> str:
    """Current UTC time, shifted by *offset_ms* milliseconds.

    Args:
        fmt: ``"iso8601"`` (``2024-01-31T12:00:00.000Z``) or ``"rfc1123"``
            (``Wed, 31 Jan 2024 12:00:00 GMT``).
        offset_ms: Milliseconds to add; may be negative.
    """
    moment = datetime.now(timezone.utc) + timedelta(milliseconds=offset_ms)
    if fmt == "rfc1123":
        return format_datetime(moment, usegmt=True)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def resolve_system_variable(name: str) -> str | None:
    """Generate the value for a system variable, or ``None`` if *name* is not one."""
    name = name.strip()
    if name == "$guid":
        return generate_guid()
    if name == "$timestamp":
        return generate_timestamp()

    match = RANDOM_INT_PATTERN.match(name)
    if match:
        if match.group(1) is None:
            return generate_random_int()
        return generate_random_int(int(match.group(1)), int(match.group(2)))

    match = DATETIME_PATTERN.match(name)
    if match:
        return generate_datetime(match.group(1) or "iso8601", int(match.group(2) or 0))

    return None


def is_system_variable(name: str) -> bool:
    name = name.strip()
    return (
        name in ("$guid", "$timestamp")
        or RANDOM_INT_PATTERN.match(name) is not None
        or DATETIME_PATTERN.match(name) is not None
    )
