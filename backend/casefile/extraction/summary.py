"""Human-readable counts for an extraction result awaiting review."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class ExtractionSummary(BaseModel):
    counts: list[str] = []
    total: int = 0
    sections_populated: int = 0


def _plural(n: int, word: str, suffix: str = "s") -> str:
    return f"{n} {word}{suffix if n != 1 else ''}"


def _section(extracted: dict[str, Any], name: str) -> dict[str, Any]:
    value = extracted.get(name)
    return value if isinstance(value, dict) else {}


def _count(extracted: dict[str, Any], section: str, name: str) -> int:
    value = _section(extracted, section).get(name)
    return len(value) if isinstance(value, list) else 0


def build_extraction_summary(extracted: dict[str, Any]) -> ExtractionSummary:
    counts: list[str] = []

    if _section(extracted, "identity").get("full_name"):
        counts.append("Identity")

    addresses = _count(extracted, "locations", "addresses")
    if addresses:
        counts.append(_plural(addresses, "address", "es"))

    phones = _count(extracted, "contact", "phone_numbers")
    emails = _count(extracted, "contact", "email_addresses")
    if phones or emails:
        counts.append(f"{_plural(phones, 'phone')}, {_plural(emails, 'email')}")

    socials = _count(extracted, "digital", "social_accounts")
    if socials:
        counts.append(_plural(socials, "social account"))
    brokers = _count(extracted, "digital", "data_broker_listings")
    if brokers:
        counts.append(_plural(brokers, "broker listing"))
    breaches = _count(extracted, "breaches", "records")
    if breaches:
        counts.append(_plural(breaches, "breach record"))
    family = _count(extracted, "network", "family_members")
    if family:
        counts.append(_plural(family, "family member"))
    associates = _count(extracted, "network", "associates")
    if associates:
        counts.append(_plural(associates, "associate"))

    public_records = sum(
        _count(extracted, "public_records", name)
        for name in ("properties", "corporate_filings", "court_records", "political_donations")
    )
    if public_records:
        counts.append(_plural(public_records, "public record"))

    behavioral = sum(
        _count(extracted, "behavioral", name)
        for name in ("routines", "travel_patterns", "observations")
    )
    if behavioral:
        counts.append(_plural(behavioral, "behavioral pattern"))

    reported = _section(extracted, "extraction_summary").get("total_data_points")
    if isinstance(reported, int) and not isinstance(reported, bool) and reported > 0:
        total = reported
    else:
        total = (
            addresses + phones + emails + socials + brokers + breaches
            + family + associates + public_records + behavioral
        )

    return ExtractionSummary(counts=counts, total=total, sections_populated=len(counts))
