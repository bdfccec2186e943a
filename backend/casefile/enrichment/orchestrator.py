"""Enrichment orchestrator.

Runs the five enrichment task groups over a profile, strictly one after
another and one item at a time, and folds every result back through the
caller's ``apply_update``.  Each update is a function from the *current*
profile to a new one, so results landing while the user edits other
fields compose instead of racing on a stale copy.

A failing item (exception, timeout, provider error outcome) is counted
and recorded; the rest of its group and every later group still run.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, computed_field

from casefile.config import (
    get_github_token,
    get_hibp_api_key,
    get_mapbox_token,
    get_provider_timeout,
    get_sec_user_agent,
)
from casefile.dedup import is_duplicate_breach
from casefile.enrichment.breaches import BreachClient, get_default_limiter
from casefile.enrichment.brokers import generate_broker_check_urls
from casefile.enrichment.company import SEC_SOURCE, CompanyLookup
from casefile.enrichment.geocoder import Geocoder
from casefile.enrichment.social import SocialVerifier, supports_automated_verification
from casefile.models.outcomes import (
    BreachCheckResult,
    BrokerLink,
    CompanyDetails,
    ErrorCode,
    GeocodeResult,
    LookupFailure,
    SocialVerification,
)
from casefile.models.profile import (
    CorporateFiling,
    DataBrokerListing,
    EmailEnrichment,
    Profile,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

ProfileUpdate = Callable[[Profile], Profile]
ApplyUpdate = Callable[[ProfileUpdate], Any]

BROKER_CHECK_SOURCE = "casefile broker check"
# Corporate filings from these sources mean the company lookup already ran.
ENRICHED_FILING_SOURCES: frozenset[str] = frozenset({"OpenCorporates", SEC_SOURCE})
CHECKED = "checked"
NOTHING_AVAILABLE = "No enrichments available. Add data first."


class TaskFailure(BaseModel):
    task: str
    item: str | None = None
    reason: str


class EnrichmentRunResult(BaseModel):
    """Counters for one ``run_all`` invocation."""

    geocoded: int = 0
    breaches: int = 0
    socials: int = 0
    company: bool = False
    brokers: int = 0
    errors: int = 0
    failures: list[TaskFailure] = []

    @computed_field
    @property
    def total(self) -> int:
        return self.geocoded + self.breaches + self.socials + int(self.company) + self.brokers

    @computed_field
    @property
    def summary(self) -> str:
        parts: list[str] = []
        if self.geocoded:
            parts.append(f"{self.geocoded} address{'es' if self.geocoded > 1 else ''} geocoded")
        if self.breaches:
            parts.append(f"{self.breaches} email{'s' if self.breaches > 1 else ''} checked")
        if self.socials:
            parts.append(f"{self.socials} social{'s' if self.socials > 1 else ''} verified")
        if self.company:
            parts.append("company data enriched")
        if self.brokers:
            parts.append(f"{self.brokers} broker checks queued")
        if self.errors:
            parts.append(f"{self.errors} failed")
        return " · ".join(parts) if parts else NOTHING_AVAILABLE

    def record_failure(self, task: str, item: str | None, reason: str) -> None:
        self.errors += 1
        self.failures.append(TaskFailure(task=task, item=item, reason=reason))


@dataclass
class EnrichmentClients:
    geocoder: Geocoder | None = None
    breaches: BreachClient | None = None
    social: SocialVerifier | None = None
    company: CompanyLookup | None = None
    broker_urls: Callable[[str | None, str | None], list[BrokerLink]] = generate_broker_check_urls


def build_clients(http: httpx.AsyncClient | None = None) -> EnrichmentClients:
    """Build the lookup clients from the current configuration."""
    return EnrichmentClients(
        geocoder=Geocoder(token=get_mapbox_token(), http=http),
        breaches=BreachClient(api_key=get_hibp_api_key(), limiter=get_default_limiter(), http=http),
        social=SocialVerifier(github_token=get_github_token(), http=http),
        company=CompanyLookup(user_agent=get_sec_user_agent(), http=http),
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# -- Functional updates --------------------------------------------------------


def _patch_address(
    index: int, street: str | None, city: str | None, match: GeocodeResult
) -> ProfileUpdate:
    def update(profile: Profile) -> Profile:
        addresses = profile.locations.addresses
        current = addresses[index] if index < len(addresses) else None
        if current is None or (current.street, current.city) != (street, city):
            logger.info("Address %d changed before its geocode landed; dropping result", index)
            return profile
        updated = profile.model_copy(deep=True)
        target = updated.locations.addresses[index]
        target.coordinates = match.coordinates
        target.geocode_confidence = match.confidence
        target.formatted_address = match.formatted_address
        return updated

    return update


def _stamp_email(
    index: int, address: str, outcome: BreachCheckResult, checked_at: str
) -> ProfileUpdate:
    def update(profile: Profile) -> Profile:
        emails = profile.contact.email_addresses
        if index >= len(emails) or emails[index].address != address:
            logger.info("Email %s changed before its breach check landed; dropping result", address)
            return profile
        updated = profile.model_copy(deep=True)
        updated.contact.email_addresses[index].enrichment = EmailEnrichment(
            last_checked=checked_at,
            breaches_found=outcome.count if outcome.found else 0,
            status=CHECKED,
        )
        records = updated.breaches.records
        for breach in outcome.breaches:
            if not is_duplicate_breach(records, breach):
                records.append(breach.model_copy(deep=True))
        return updated

    return update


def _mark_verified(
    index: int,
    platform: str | None,
    handle: str | None,
    verification: SocialVerification,
    verified_at: str,
) -> ProfileUpdate:
    def update(profile: Profile) -> Profile:
        accounts = profile.digital.social_accounts
        current = accounts[index] if index < len(accounts) else None
        if current is None or (current.platform, current.handle) != (platform, handle):
            logger.info("Social account %d changed before verification landed; dropping result", index)
            return profile
        updated = profile.model_copy(deep=True)
        target = updated.digital.social_accounts[index]
        target.verified = True
        target.verified_date = verified_at
        target.visibility = verification.visibility or target.visibility
        if verification.followers is not None:
            target.followers = verification.followers
        return updated

    return update


def _add_corporate_filing(details: CompanyDetails) -> ProfileUpdate:
    def update(profile: Profile) -> Profile:
        filings = profile.public_records.corporate_filings
        if any(f.source == SEC_SOURCE and f.entity == details.name for f in filings):
            return profile
        updated = profile.model_copy(deep=True)
        updated.public_records.corporate_filings.append(
            CorporateFiling(
                entity=details.name,
                role=updated.professional.title or "Associated",
                jurisdiction=details.state or "",
                source=SEC_SOURCE,
                ticker=details.ticker,
                sic_description=details.sic_description,
                entity_type=details.entity_type,
            )
        )
        return updated

    return update


def _add_broker_listings(links: list[BrokerLink], checked_on: str) -> ProfileUpdate:
    def update(profile: Profile) -> Profile:
        updated = profile.model_copy(deep=True)
        listings = updated.digital.data_broker_listings
        listed = {(listing.broker or "").lower() for listing in listings}
        for link in links:
            if link.name.lower() in listed:
                continue
            listings.append(
                DataBrokerListing(
                    broker=link.name,
                    status="pending_check",
                    url=link.url,
                    data_exposed=link.notes,
                    last_checked=checked_on,
                    source=BROKER_CHECK_SOURCE,
                )
            )
        return updated

    return update


# -- Orchestrator --------------------------------------------------------------


class EnrichmentOrchestrator:
    """Sequence the enrichment task groups over one profile."""

    def __init__(
        self,
        clients: EnrichmentClients,
        call_timeout: float | None = None,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.clients = clients
        self.call_timeout = call_timeout if call_timeout is not None else get_provider_timeout()
        self._now = now

    async def run_all(self, profile: Profile, apply_update: ApplyUpdate) -> EnrichmentRunResult:
        """Run every task group over *profile*; never raises."""
        result = EnrichmentRunResult()
        groups: list[tuple[str, Callable[..., Awaitable[None]]]] = [
            ("geocode", self._geocode_addresses),
            ("breaches", self._check_breaches),
            ("social", self._verify_socials),
            ("company", self._lookup_company),
            ("brokers", self._queue_broker_checks),
        ]
        for name, group in groups:
            try:
                await group(profile, apply_update, result)
            except Exception as exc:
                logger.exception("Enrichment group %s aborted", name)
                result.record_failure(name, None, str(exc) or exc.__class__.__name__)
        logger.info("Enrichment run finished: %s", result.summary)
        return result

    async def _call(self, awaitable: Awaitable[T]) -> T | LookupFailure:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.call_timeout)
        except asyncio.TimeoutError:
            return LookupFailure(
                error=ErrorCode.NETWORK_ERROR,
                message=f"Provider call timed out after {self.call_timeout:g}s",
            )

    @staticmethod
    def _failed(result: EnrichmentRunResult, task: str, item: str | None, outcome: Any) -> bool:
        """Record *outcome* unless it is a caller input error; return whether it failed at all.

        Unconfigured providers never get this far, so ``no_api_key`` here
        means the provider rejected the configured credentials.
        """
        if not isinstance(outcome, LookupFailure):
            return False
        if outcome.input_error:
            logger.info("%s skipped %s: %s", task, item, outcome.message)
        else:
            logger.warning("%s failed for %s: %s", task, item, outcome.message)
            result.record_failure(task, item, f"{outcome.error.value}: {outcome.message}")
        return True

    @staticmethod
    def _crashed(result: EnrichmentRunResult, task: str, item: str | None, exc: Exception) -> None:
        logger.warning("%s raised for %s: %s", task, item, exc, exc_info=True)
        result.record_failure(task, item, str(exc) or exc.__class__.__name__)

    async def _geocode_addresses(
        self, profile: Profile, apply_update: ApplyUpdate, result: EnrichmentRunResult
    ) -> None:
        geocoder = self.clients.geocoder
        if geocoder is None or not geocoder.configured:
            return
        for index, address in enumerate(profile.locations.addresses):
            if address.coordinates or not (address.street and address.city):
                continue
            label = f"{address.street}, {address.city}"
            try:
                outcome = await self._call(geocoder.geocode_address(address))
                if self._failed(result, "geocode", label, outcome) or not outcome.found:
                    continue
                apply_update(_patch_address(index, address.street, address.city, outcome))
                result.geocoded += 1
            except Exception as exc:
                self._crashed(result, "geocode", label, exc)

    async def _check_breaches(
        self, profile: Profile, apply_update: ApplyUpdate, result: EnrichmentRunResult
    ) -> None:
        client = self.clients.breaches
        if client is None or not client.configured:
            return
        for index, email in enumerate(profile.contact.email_addresses):
            if not email.address or (email.enrichment and email.enrichment.status == CHECKED):
                continue
            try:
                outcome = await self._call(client.check_breaches(email.address))
                if self._failed(result, "breaches", email.address, outcome):
                    continue
                apply_update(_stamp_email(index, email.address, outcome, self._now().isoformat()))
                result.breaches += 1
            except Exception as exc:
                self._crashed(result, "breaches", email.address, exc)

    async def _verify_socials(
        self, profile: Profile, apply_update: ApplyUpdate, result: EnrichmentRunResult
    ) -> None:
        verifier = self.clients.social
        if verifier is None:
            return
        for index, account in enumerate(profile.digital.social_accounts):
            handle = account.url or account.handle
            if not handle or not account.platform or account.verified:
                continue
            # Other platforms need a human to confirm the manual-check link.
            if not supports_automated_verification(account.platform):
                continue
            label = f"{account.platform}:{handle}"
            try:
                outcome = await self._call(verifier.verify(account.platform, handle))
                if self._failed(result, "social", label, outcome) or outcome.verified is not True:
                    continue
                apply_update(
                    _mark_verified(index, account.platform, account.handle, outcome, self._now().isoformat())
                )
                result.socials += 1
            except Exception as exc:
                self._crashed(result, "social", label, exc)

    async def _lookup_company(
        self, profile: Profile, apply_update: ApplyUpdate, result: EnrichmentRunResult
    ) -> None:
        lookup = self.clients.company
        organization = (profile.professional.organization or "").strip()
        if lookup is None or len(organization) < 3:
            return
        if any(f.source in ENRICHED_FILING_SOURCES for f in profile.public_records.corporate_filings):
            return
        try:
            search = await self._call(lookup.search(organization))
            if self._failed(result, "company", organization, search) or not search.results:
                return
            top = search.results[0]
            if top.cik is None:
                return
            details = await self._call(lookup.details(top.cik))
            if self._failed(result, "company", organization, details):
                return
            apply_update(_add_corporate_filing(details))
            result.company = True
        except Exception as exc:
            self._crashed(result, "company", organization, exc)

    async def _queue_broker_checks(
        self, profile: Profile, apply_update: ApplyUpdate, result: EnrichmentRunResult
    ) -> None:
        full_name = (profile.identity.full_name or "").strip()
        state = next((a.state for a in profile.locations.addresses if a.state), None)
        if not full_name or not state:
            return
        if any(listing.source == BROKER_CHECK_SOURCE for listing in profile.digital.data_broker_listings):
            return
        try:
            links = self.clients.broker_urls(full_name, state)
            if not links:
                return
            apply_update(_add_broker_listings(links, self._now().date().isoformat()))
            result.brokers = len(links)
        except Exception as exc:
            self._crashed(result, "brokers", full_name, exc)
