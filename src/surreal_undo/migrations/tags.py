"""
Run tags.

A tag is the run's UTC start instant rendered as ISO 8601 with ``:`` and
``.`` replaced by ``_`` (``2026-10-18T09_15_02_123456Z``). It names the
journal file and any backup collections of the run, and the legacy restore
reads the instant back out of it.
"""

import re
from datetime import datetime, timezone

_TAG_PATTERN = re.compile(r"^(\d{4}-\d{2}-\d{2})T(\d{2})_(\d{2})_(\d{2})_(\d{3}|\d{6})Z$")
_SAFE_TAG = re.compile(r"^[A-Za-z0-9_\-]+$")


def make_tag(now: datetime | None = None) -> tuple[str, datetime]:
    """
    Derive a tag from the invocation time.

    Args:
        now: Instant to encode (defaults to the current UTC time)

    Returns:
        ``(tag, instant)`` where ``instant`` is the UTC time the tag encodes
    """
    instant = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    iso = instant.strftime("%Y-%m-%dT%H:%M:%S.%fZ")
    return iso.replace(":", "_").replace(".", "_"), instant


def parse_tag(tag: str) -> datetime:
    """
    Recover the UTC instant encoded in a tag.

    Accepts microsecond tags and the millisecond tags of older journals.

    Raises:
        ValueError: If the tag does not encode a timestamp
    """
    match = _TAG_PATTERN.match(tag)
    if not match:
        raise ValueError(f"Tag does not encode a timestamp: {tag}")
    day, hour, minute, second, fraction = match.groups()
    micros = int(fraction.ljust(6, "0"))
    parsed = datetime.fromisoformat(f"{day}T{hour}:{minute}:{second}")
    return parsed.replace(microsecond=micros, tzinfo=timezone.utc)


def is_safe_tag(tag: str) -> bool:
    """True if the tag is URL-safe and cannot escape the journal directory."""
    return bool(_SAFE_TAG.match(tag))
