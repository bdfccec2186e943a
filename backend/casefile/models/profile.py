"""Pydantic models for the subject profile.

A ``Profile`` is the single nested record kept for one investigation
subject.  It is built from the schema default, merged with persisted data,
and then replaced (never mutated in place) by user edits, document
extraction merges and enrichment updates.

Sub-records accept unknown keys so that provider output with extra fields
survives a round-trip.  Items inserted by document extraction carry the
``_aiExtracted`` provenance marker.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class SubRecord(BaseModel):
    """Base for every item stored in a profile list."""

    model_config = ConfigDict(
        extra="allow",
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    ai_extracted: bool = Field(default=False, alias="_aiExtracted")


class Section(BaseModel):
    """Base for the fixed top-level profile sections."""

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # A stored ``null`` falls back to the field default so list fields
        # always exist.
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


# -- Sub-records ---------------------------------------------------------------


class Education(SubRecord):
    institution: str | None = None
    degree: str | None = None
    year: str | None = None


class Address(SubRecord):
    """Physical address, optionally geocoded."""

    type: str | None = None  # home, work, vacation, secondary, previous
    label: str | None = None
    street: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None
    country: str | None = None
    source: str | None = None
    confidence: str | None = None  # confirmed, probable, unverified
    coordinates: list[float] | None = None  # [lng, lat]
    geocode_confidence: float | None = None
    formatted_address: str | None = None


class PhoneNumber(SubRecord):
    type: str | None = None
    number: str | None = None
    source: str | None = None


class EmailEnrichment(BaseModel):
    """Breach-check stamp left on an email address."""

    model_config = ConfigDict(extra="allow")

    last_checked: str | None = None
    breaches_found: int = 0
    status: str | None = None


class EmailAddress(SubRecord):
    type: str | None = None
    address: str | None = None
    source: str | None = None
    enrichment: EmailEnrichment | None = None


class SocialAccount(SubRecord):
    platform: str | None = None
    handle: str | None = None
    url: str | None = None
    visibility: str | None = None
    followers: int | str | None = None
    notes: str | None = None
    verified: bool = False
    verified_date: str | None = None


class DataBrokerListing(SubRecord):
    broker: str | None = None
    status: str | None = None
    url: str | None = None
    data_exposed: str | None = None
    last_checked: str | None = None
    source: str | None = None


class BreachRecord(SubRecord):
    """One exposure of one email address in one breach."""

    breach_name: str | None = None
    date: str | None = None
    email_exposed: str | None = None
    data_types: list[str] = []
    severity: Severity | None = None
    notes: str | None = None
    source: str | None = None
    hibp_name: str | None = None

    @field_validator("severity", mode="before")
    @classmethod
    def _normalize_severity(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower()
            if value not in {s.value for s in Severity}:
                return None
        return value

    @field_validator("data_types", mode="before")
    @classmethod
    def _coerce_data_types(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value


class FamilyMember(SubRecord):
    name: str | None = None
    relationship: str | None = None
    age: int | str | None = None
    occupation: str | None = None
    social_media: list[Any] = []
    notes: str | None = None


class Associate(SubRecord):
    name: str | None = None
    relationship: str | None = None
    shared_data_points: list[Any] = []
    notes: str | None = None


class PropertyRecord(SubRecord):
    type: str | None = None
    address: str | None = None
    value: str | None = None
    source: str | None = None


class CorporateFiling(SubRecord):
    entity: str | None = None
    role: str | None = None
    jurisdiction: str | None = None
    source: str | None = None
    ticker: str | None = None
    sic_description: str | None = None
    entity_type: str | None = None


class CourtRecord(SubRecord):
    type: str | None = None
    case: str | None = None
    jurisdiction: str | None = None
    summary: str | None = None


class PoliticalDonation(SubRecord):
    recipient: str | None = None
    amount: str | None = None
    date: str | None = None
    source: str | None = None


class Routine(SubRecord):
    name: str | None = None
    description: str | None = None
    schedule: str | None = None
    consistency: int | str | None = None
    location: str | None = None
    data_source: str | None = None
    notes: str | None = None


class TravelPattern(SubRecord):
    pattern: str | None = None
    frequency: str | None = None
    data_source: str | None = None
    notes: str | None = None


class Observation(SubRecord):
    description: str | None = None
    exploitability: str | None = None
    category: str | None = None
    data_source: str | None = None
    first_observed: str | None = None
    notes: str | None = None


# -- Sections ------------------------------------------------------------------


class Identity(Section):
    full_name: str = ""
    aliases: list[str] = []
    date_of_birth: str = ""
    age: int | str | None = None
    nationality: str = ""
    gender: str = ""
    photo_url: str = ""


class Professional(Section):
    title: str = ""
    organization: str = ""
    organization_type: str = ""
    industry: str = ""
    annual_revenue: str = ""
    previous_roles: list[Any] = []
    education: list[Education] = []
    professional_licenses: list[Any] = []


class Locations(Section):
    addresses: list[Address] = []


class Contact(Section):
    phone_numbers: list[PhoneNumber] = []
    email_addresses: list[EmailAddress] = []


class Digital(Section):
    social_accounts: list[SocialAccount] = []
    data_broker_listings: list[DataBrokerListing] = []
    domain_registrations: list[Any] = []


class Breaches(Section):
    records: list[BreachRecord] = []


class Network(Section):
    family_members: list[FamilyMember] = []
    associates: list[Associate] = []


class PublicRecords(Section):
    properties: list[PropertyRecord] = []
    corporate_filings: list[CorporateFiling] = []
    court_records: list[CourtRecord] = []
    political_donations: list[PoliticalDonation] = []
    other: list[Any] = []


class Behavioral(Section):
    routines: list[Routine] = []
    travel_patterns: list[TravelPattern] = []
    digital_behavior: list[Any] = []
    observations: list[Observation] = []


class Notes(Section):
    general: str = ""
    raw_sources: list[Any] = []


class Profile(Section):
    """Full nested intelligence record for one investigation subject."""

    identity: Identity = Identity()
    professional: Professional = Professional()
    locations: Locations = Locations()
    contact: Contact = Contact()
    digital: Digital = Digital()
    breaches: Breaches = Breaches()
    network: Network = Network()
    public_records: PublicRecords = PublicRecords()
    behavioral: Behavioral = Behavioral()
    notes: Notes = Notes()

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready dict using the wire key for the provenance marker."""
        return self.model_dump(mode="json", by_alias=True)


def empty_profile_data() -> dict[str, Any]:
    """Return the schema default as a fresh plain dict."""
    return Profile().to_dict()
