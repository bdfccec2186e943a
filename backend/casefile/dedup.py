"""Breach-record deduplication."""

from __future__ import annotations

import re
from collections.abc import Iterable

from casefile.models.profile import BreachRecord

_YEAR_SUFFIX = re.compile(r"\s*\(\d{4}\)\s*")


def normalize_breach_name(name: str | None) -> str:
    """Lower-case *name* and drop a ``(YYYY)`` year token."""
    if not name:
        return ""
    return _YEAR_SUFFIX.sub("", name.lower()).strip()


def breach_key(record: BreachRecord) -> tuple[str, str | None]:
    """Identity of a breach record: normalized name plus exposed email."""
    name = record.hibp_name or record.breach_name
    return normalize_breach_name(name), record.email_exposed


def is_duplicate_breach(existing: Iterable[BreachRecord], candidate: BreachRecord) -> bool:
    """Return ``True`` if *candidate* already appears in *existing*.

    Names are compared case-insensitively with any trailing year suffix
    removed; ``email_exposed`` must match exactly.  The provenance marker
    plays no part in the comparison.
    """
    key = breach_key(candidate)
    return any(breach_key(record) == key for record in existing)
