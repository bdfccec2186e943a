"""Data-volume-aware profile completeness score.

Each section scores between 0 and 1 depending on how much data it holds,
not just whether any exists; the section score is scaled by its weight.
The weights add up to 105, so a complete profile saturates the 100 cap
without needing every section.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Sequence
from typing import Any

from pydantic import BaseModel

from casefile.models.profile import Profile


class Completeness(BaseModel):
    score: int = 0
    details: dict[str, bool] = {}
    missing: list[str] = []


def _filled(record: Any, fields: Iterable[str]) -> int:
    count = 0
    for name in fields:
        value = getattr(record, name, None)
        if value is None or value is False or value == "" or value == []:
            continue
        count += 1
    return count


def _ratio(n: float, full: float) -> float:
    return min(n / full, 1.0)


def _detail(records: Sequence[Any], fields: Sequence[str]) -> float:
    """Average share of *fields* filled across *records*."""
    if not records:
        return 0.0
    return sum(_filled(r, fields) / len(fields) for r in records) / len(records)


def _identity(p: Profile) -> float:
    identity = p.identity
    fields = _filled(identity, ("full_name", "date_of_birth", "gender", "nationality", "aliases"))
    has_name = bool(identity.full_name)
    return (
        (0.4 if has_name else 0.0)
        + _ratio(fields - int(has_name), 4) * 0.3
        + _ratio(len(identity.aliases), 3) * 0.3
    )


def _professional(p: Profile) -> float:
    pro = p.professional
    fields = _filled(pro, ("title", "organization", "organization_type", "industry", "annual_revenue"))
    return _ratio(fields, 5) * 0.6 + _ratio(len(pro.previous_roles), 3) * 0.4


def _locations(p: Profile) -> float:
    addresses = p.locations.addresses
    if not addresses:
        return 0.0
    fields = ("street", "city", "state", "zip", "country", "type", "confidence")
    return _ratio(len(addresses), 4) * 0.5 + _detail(addresses, fields) * 0.5


def _contact(p: Profile) -> float:
    phones = sum(1 for phone in p.contact.phone_numbers if phone.number)
    emails = sum(1 for email in p.contact.email_addresses if email.address)
    return _ratio(phones, 3) * 0.5 + _ratio(emails, 3) * 0.5


def _social(p: Profile) -> float:
    accounts = p.digital.social_accounts
    if not accounts:
        return 0.0
    fields = ("platform", "handle", "url", "visibility", "followers")
    return _ratio(len(accounts), 6) * 0.6 + _detail(accounts, fields) * 0.4


def _brokers(p: Profile) -> float:
    return _ratio(len(p.digital.data_broker_listings), 5)


def _breaches(p: Profile) -> float:
    records = p.breaches.records
    if not records:
        return 0.0
    fields = ("breach_name", "severity", "data_types", "date", "source")
    return _ratio(len(records), 5) * 0.5 + _detail(records, fields) * 0.5


def _family(p: Profile) -> float:
    members = p.network.family_members
    if not members:
        return 0.0
    fields = ("name", "relationship", "notes", "social_media")
    return _ratio(len(members), 5) * 0.5 + _detail(members, fields) * 0.5


def _associates(p: Profile) -> float:
    return _ratio(len(p.network.associates), 4)


def _public_records(p: Profile) -> float:
    records = p.public_records
    total = len(records.properties) + len(records.corporate_filings) + len(records.court_records)
    return _ratio(total, 5)


def _behavioral(p: Profile) -> float:
    routines = p.behavioral.routines
    if not routines:
        return 0.0
    fields = ("name", "schedule", "location", "consistency", "data_source")
    return _ratio(len(routines), 4) * 0.5 + _detail(routines, fields) * 0.5


def _enriched(p: Profile) -> float:
    emails = p.contact.email_addresses
    checked = sum(1 for e in emails if e.enrichment is not None and e.enrichment.status == "checked")
    if not checked:
        return 0.0
    return _ratio(checked, max(len(emails), 1))


# (key, weight, label, scorer)
SECTIONS: tuple[tuple[str, int, str, Callable[[Profile], float]], ...] = (
    ("identity", 15, "Identity", _identity),
    ("professional", 10, "Professional info", _professional),
    ("locations", 12, "Locations", _locations),
    ("contact", 8, "Contact info", _contact),
    ("social", 12, "Social accounts", _social),
    ("brokers", 8, "Data broker listings", _brokers),
    ("breaches", 10, "Breach data", _breaches),
    ("family", 8, "Family details", _family),
    ("associates", 5, "Associates", _associates),
    ("public_records", 5, "Public records", _public_records),
    ("behavioral", 7, "Behavioral patterns", _behavioral),
    ("enriched", 5, "Enriched data", _enriched),
)


def calculate_completeness(profile: Profile | None) -> Completeness:
    if profile is None:
        return Completeness(missing=[label for _, _, label, _ in SECTIONS])

    score = 0
    details: dict[str, bool] = {}
    missing: list[str] = []
    for key, weight, label, scorer in SECTIONS:
        section_score = scorer(profile)
        # Half-up rounding per section.
        score += math.floor(section_score * weight + 0.5)
        details[key] = section_score > 0
        if section_score == 0:
            missing.append(label)
    return Completeness(score=min(score, 100), details=details, missing=missing)
