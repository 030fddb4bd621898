"""Deterministic blob path generation for image records.

Layout inside the image-records container::

    images/{user-key}/{YYYY}/{MM}/{YYYYMMDDTHHMMSS}-{record-id}.json

The timestamp segment sorts lexically in creation order, so listing a
user's prefix and reversing the names gives newest-first history
without reading every blob.

``user-key`` is the SHA-256 hex digest of the principal id.  Principal
ids are case-sensitive and may contain any character, so the segment
must be an exact encoding of the id, never a slug of it: two distinct
principals always get distinct prefixes.

Record ids are sanitised to lowercase slug form: only ``a-z``, ``0-9``
and ``-`` are allowed.
"""

from __future__ import annotations

import hashlib
import re
from datetime import UTC, datetime

IMAGES_PREFIX = "images"

# Regex for sanitising path segments (allow only lowercase alphanumeric + hyphen)
_SLUG_RE = re.compile(r"[^a-z0-9-]+")


def sanitise_slug(value: str) -> str:
    """Convert a string to a path-safe slug.

    - Lowercase
    - Spaces → hyphens
    - Strips all characters except ``a-z``, ``0-9``, ``-``
    - Collapses consecutive hyphens
    - Falls back to ``"unknown"`` if the result is empty
    """
    slug = value.lower().strip().replace(" ", "-")
    slug = _SLUG_RE.sub("", slug)
    slug = re.sub(r"-{2,}", "-", slug).strip("-")
    return slug if slug else "unknown"


def user_key(user_id: str) -> str:
    """Return the collision-free path segment for *user_id*."""
    return hashlib.sha256(user_id.encode("utf-8")).hexdigest()


def build_user_prefix(user_id: str) -> str:
    """Return the blob prefix holding every record of *user_id* (with trailing ``/``)."""
    return f"{IMAGES_PREFIX}/{user_key(user_id)}/"


def build_image_record_path(
    user_id: str,
    record_id: str,
    *,
    timestamp: datetime | None = None,
) -> str:
    """Build the blob path for one image record.

    Format: ``images/{user-key}/{YYYY}/{MM}/{YYYYMMDDTHHMMSS}-{record-id}.json``

    Args:
        user_id: Owning principal (hashed into the user segment).
        record_id: Record identifier (will be sanitised).
        timestamp: Record creation time. Defaults to current UTC time.
    """
    ts = (timestamp or datetime.now(UTC)).astimezone(UTC)
    stamp = ts.strftime("%Y%m%dT%H%M%S")
    return (
        f"{build_user_prefix(user_id)}{ts.year:04d}/{ts.month:02d}/"
        f"{stamp}-{sanitise_slug(record_id)}.json"
    )
