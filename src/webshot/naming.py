"""
Identifier and path scheme for stored captures.

A capture is stored as <storage-root>/<YYYY-MM-DD>/<id>_<original-name>.
The id prefix is the only link between a capture and its file, so lookups
match on the exact "<id>_" prefix, never on a substring.
"""

import re
import uuid
from datetime import date, datetime

ID_SEPARATOR = "_"

_UUID_PREFIX = re.compile(
    r"^([0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12})" + ID_SEPARATOR
)


def new_id() -> str:
    """Return a random 128-bit identifier in canonical lowercase hyphenated form."""
    return str(uuid.uuid4())


def local_now() -> datetime:
    """Current time as an aware datetime in the local timezone."""
    return datetime.now().astimezone()


def partition_for(timestamp: datetime) -> str:
    """
    Return the partition key (YYYY-MM-DD) for a capture started at timestamp.

    Aware timestamps are converted to local time first; naive ones are
    taken to be local already.
    """
    if timestamp.tzinfo is not None:
        timestamp = timestamp.astimezone()
    return timestamp.date().isoformat()


def is_partition_name(name: str) -> bool:
    """Whether a directory name is a valid YYYY-MM-DD calendar date."""
    if len(name) != 10:
        return False
    try:
        return date.fromisoformat(name).isoformat() == name
    except ValueError:
        return False


def compose_file_name(screenshot_id: str, original_name: str) -> str:
    return f"{screenshot_id}{ID_SEPARATOR}{original_name}"


def matches_id(file_name: str, screenshot_id: str) -> bool:
    """True only when file_name starts with screenshot_id immediately followed by the separator."""
    if not screenshot_id:
        return False
    return file_name.startswith(screenshot_id + ID_SEPARATOR)


def parse_id(file_name: str) -> str | None:
    """Extract the id prefix from a stored file name, or None if it has none."""
    match = _UUID_PREFIX.match(file_name)
    return match.group(1) if match else None
