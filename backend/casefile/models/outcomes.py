"""Typed outcomes returned by the external lookup clients.

Every client maps its provider's raw response into one of these models
before any other component sees it.  Failures are values
(:class:`LookupFailure`), not exceptions.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Union

from pydantic import BaseModel

from casefile.models.profile import BreachRecord


class ErrorCode(str, Enum):
    NO_API_KEY = "no_api_key"
    INVALID_EMAIL = "invalid_email"
    INVALID_QUERY = "invalid_query"
    RATE_LIMITED = "rate_limited"
    NETWORK_ERROR = "network_error"
    UNSUPPORTED_FILE_TYPE = "unsupported_file_type"
    PARSE_ERROR = "parse_error"
    EXTRACTION_FAILED = "extraction_failed"


# Transient failures worth a retry; the orchestrator counts these as errors.
TRANSIENT_ERRORS: frozenset[ErrorCode] = frozenset(
    {ErrorCode.RATE_LIMITED, ErrorCode.NETWORK_ERROR}
)
# Caller input problems; the orchestrator skips the item without counting it.
INPUT_ERRORS: frozenset[ErrorCode] = frozenset(
    {ErrorCode.INVALID_EMAIL, ErrorCode.INVALID_QUERY}
)


class LookupFailure(BaseModel):
    error: ErrorCode
    message: str

    @property
    def transient(self) -> bool:
        return self.error in TRANSIENT_ERRORS

    @property
    def input_error(self) -> bool:
        return self.error in INPUT_ERRORS


class BreachCheckResult(BaseModel):
    found: bool
    breaches: list[BreachRecord] = []
    count: int = 0


class GeocodeResult(BaseModel):
    found: bool
    coordinates: list[float] | None = None  # [lng, lat]
    formatted_address: str | None = None
    confidence: float | None = None


class SocialVerification(BaseModel):
    """Outcome of a social-profile check.

    ``verified`` is ``True``/``False`` for automated lookups and ``None``
    when the platform needs a human to open ``url`` (``manual_check``).
    """

    verified: bool | None
    platform: str | None = None
    handle: str | None = None
    url: str | None = None
    display_name: str | None = None
    bio: str | None = None
    followers: int | None = None
    following: int | None = None
    public_repos: int | None = None
    created: str | None = None
    visibility: str | None = None
    metadata: dict[str, Any] = {}
    source: str | None = None
    manual_check: bool = False
    instructions: str | None = None
    reason: str | None = None


class CompanyMatch(BaseModel):
    name: str
    cik: int | str | None = None
    ticker: str | None = None
    source: str = "SEC EDGAR"


class CompanySearchResult(BaseModel):
    results: list[CompanyMatch] = []
    total: int = 0


class CompanyFiling(BaseModel):
    form: str | None = None
    date: str | None = None
    accession: str | None = None
    description: str | None = None


class CompanyDetails(BaseModel):
    name: str
    cik: str | None = None
    ticker: str | None = None
    sic_description: str | None = None
    sic: str | None = None
    state: str | None = None
    fiscal_year_end: str | None = None
    exchanges: list[str] = []
    entity_type: str | None = None
    ein: str | None = None
    recent_filings: list[CompanyFiling] = []
    source: str = "SEC EDGAR"


class BrokerLink(BaseModel):
    name: str
    url: str
    notes: str
    status: str = "unchecked"


BreachOutcome = Union[BreachCheckResult, LookupFailure]
GeocodeOutcome = Union[GeocodeResult, LookupFailure]
SocialOutcome = Union[SocialVerification, LookupFailure]
CompanySearchOutcome = Union[CompanySearchResult, LookupFailure]
CompanyDetailsOutcome = Union[CompanyDetails, LookupFailure]
