"""Profile merging.

Two merges live here:

- :func:`deep_merge` is the structural merge used once per subject load to
  lay persisted data over the schema default.
- :func:`merge_extraction` folds a document-extraction result into a live
  profile without overwriting anything the user already entered, tagging
  what it adds.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from casefile.models.profile import Profile, empty_profile_data

logger = logging.getLogger(__name__)

PROVENANCE_KEY = "_aiExtracted"

# Scalar fields written only when the profile's own value is empty.
SCALAR_FIELDS: tuple[str, ...] = (
    "identity.full_name",
    "identity.date_of_birth",
    "identity.age",
    "identity.nationality",
    "identity.gender",
    "professional.title",
    "professional.organization",
    "professional.organization_type",
    "professional.industry",
    "professional.annual_revenue",
)

# List fields whose extracted items are appended to the profile's list.
LIST_FIELDS: tuple[str, ...] = (
    "identity.aliases",
    "professional.education",
    "locations.addresses",
    "contact.phone_numbers",
    "contact.email_addresses",
    "digital.social_accounts",
    "digital.data_broker_listings",
    "breaches.records",
    "network.family_members",
    "network.associates",
    "public_records.properties",
    "public_records.corporate_filings",
    "public_records.court_records",
    "public_records.political_donations",
    "behavioral.routines",
    "behavioral.travel_patterns",
    "behavioral.observations",
)

# Lists of plain strings; their items cannot carry the provenance marker.
STRING_LIST_FIELDS: frozenset[str] = frozenset({"identity.aliases"})


def deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Merge *overlay* into a copy of *base*.

    Nested dicts present on both sides are merged recursively.  Anything
    else in *overlay*, lists included, replaces the value in *base*
    wholesale.
    """
    result = dict(base)
    for key, value in overlay.items():
        current = result.get(key)
        if isinstance(value, dict) and isinstance(current, dict):
            result[key] = deep_merge(current, value)
        else:
            result[key] = value
    return result


def load_profile(stored: dict[str, Any] | None) -> Profile:
    """Build a :class:`Profile` from persisted data laid over the schema default."""
    data = empty_profile_data()
    if stored:
        data = deep_merge(data, stored)
    return Profile.model_validate(data)


@dataclass
class MergeResult:
    merged: Profile
    tagged_paths: set[str] = field(default_factory=set)


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict)):
        return not value
    return False


def _lookup(data: Any, path: str) -> Any:
    for part in path.split("."):
        if not isinstance(data, dict):
            return None
        data = data.get(part)
    return data


def merge_extraction(profile: Profile, extracted: dict[str, Any]) -> MergeResult:
    """Fold *extracted* into *profile* and return a new profile.

    Scalar fields are filled only where the profile is empty; manual data
    always wins.  List items are appended (no dedup at this stage) and
    tagged with ``_aiExtracted``.  Fields absent or empty in *extracted*
    are left alone.  *profile* is not modified.
    """
    merged = profile.to_dict()
    tagged: set[str] = set()

    for path in SCALAR_FIELDS:
        value = _lookup(extracted, path)
        if _is_empty(value):
            continue
        section, name = path.split(".")
        if _is_empty(merged[section].get(name)):
            merged[section][name] = value
            tagged.add(path)

    for path in LIST_FIELDS:
        items = _lookup(extracted, path)
        if not isinstance(items, list) or not items:
            continue
        section, name = path.split(".")
        if path in STRING_LIST_FIELDS:
            additions = [item for item in items if isinstance(item, str) and item.strip()]
        else:
            additions = [
                {**item, PROVENANCE_KEY: True} for item in items if isinstance(item, dict)
            ]
        skipped = len(items) - len(additions)
        if skipped:
            logger.warning("Skipped %d malformed item(s) for %s", skipped, path)
        if not additions:
            continue
        merged[section][name] = list(merged[section].get(name) or []) + additions
        tagged.add(path)

    return MergeResult(merged=Profile.model_validate(merged), tagged_paths=tagged)
