"""Company registry lookup against SEC EDGAR.

Search runs over the public ticker index (cached for 30 minutes); details
come from the per-company submissions document keyed by CIK.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

import httpx

from casefile.enrichment.base import ProviderClient
from casefile.models.outcomes import (
    CompanyDetails,
    CompanyDetailsOutcome,
    CompanyFiling,
    CompanyMatch,
    CompanySearchOutcome,
    CompanySearchResult,
    ErrorCode,
    LookupFailure,
)

logger = logging.getLogger(__name__)

SEC_TICKERS_URL = "https://www.sec.gov/files/company_tickers.json"
SEC_SUBMISSIONS_URL = "https://data.sec.gov/submissions/CIK{cik:0>10}.json"
SEC_SOURCE = "SEC EDGAR"
TICKER_CACHE_TTL = 30 * 60
MIN_NAME_LENGTH = 3
MAX_MATCHES = 5
MAX_RECENT_FILINGS = 10


class CompanyLookup(ProviderClient):
    name = SEC_SOURCE

    def __init__(
        self,
        user_agent: str,
        http: httpx.AsyncClient | None = None,
        timeout: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(http=http, timeout=timeout)
        self.user_agent = user_agent
        self._clock = clock
        self._tickers: list[dict[str, Any]] | None = None
        self._tickers_loaded_at: float = 0.0

    async def _fetch_tickers(self) -> list[dict[str, Any]]:
        if self._tickers is not None and self._clock() - self._tickers_loaded_at < TICKER_CACHE_TTL:
            return self._tickers
        response = await self._get(SEC_TICKERS_URL, headers={"User-Agent": self.user_agent})
        response.raise_for_status()
        data = response.json()
        self._tickers = [entry for entry in data.values() if isinstance(entry, dict)]
        self._tickers_loaded_at = self._clock()
        logger.debug("Loaded %d SEC tickers", len(self._tickers))
        return self._tickers

    async def search(self, company_name: str) -> CompanySearchOutcome:
        if not company_name or len(company_name.strip()) < MIN_NAME_LENGTH:
            return LookupFailure(error=ErrorCode.INVALID_QUERY, message="Company name too short")

        try:
            tickers = await self._fetch_tickers()
        except (httpx.HTTPError, ValueError, AttributeError) as exc:
            return self._network_failure(exc)

        query = company_name.strip().lower()
        matches: list[CompanyMatch] = []
        for entry in tickers:
            title = str(entry.get("title") or "")
            ticker = str(entry.get("ticker") or "")
            if query in title.lower() or query in ticker.lower():
                matches.append(CompanyMatch(name=title, cik=entry.get("cik_str"), ticker=ticker or None))
                if len(matches) >= MAX_MATCHES:
                    break
        return CompanySearchResult(results=matches, total=len(matches))

    async def details(self, cik: int | str) -> CompanyDetailsOutcome:
        try:
            response = await self._get(
                SEC_SUBMISSIONS_URL.format(cik=str(cik)),
                headers={"User-Agent": self.user_agent},
            )
        except httpx.HTTPError as exc:
            return self._network_failure(exc)

        if not response.is_success:
            return LookupFailure(
                error=ErrorCode.NETWORK_ERROR,
                message=f"SEC EDGAR request failed with status {response.status_code}",
            )

        try:
            return self._normalize(response.json())
        except (ValueError, TypeError, KeyError, AttributeError) as exc:
            return self._network_failure(exc)

    @staticmethod
    def _normalize(data: dict[str, Any]) -> CompanyDetails:
        recent = (data.get("filings") or {}).get("recent") or {}
        forms = recent.get("form") or []

        def column(name: str, index: int) -> Any:
            values = recent.get(name) or []
            return values[index] if index < len(values) else None

        filings = [
            CompanyFiling(
                form=form,
                date=column("filingDate", i),
                accession=column("accessionNumber", i),
                description=column("primaryDocDescription", i),
            )
            for i, form in enumerate(forms[:MAX_RECENT_FILINGS])
        ]
        business = (data.get("addresses") or {}).get("business") or {}
        tickers = data.get("tickers") or []
        return CompanyDetails(
            name=data["name"],
            cik=str(data.get("cik")) if data.get("cik") is not None else None,
            ticker=tickers[0] if tickers else None,
            sic_description=data.get("sicDescription") or None,
            sic=str(data["sic"]) if data.get("sic") else None,
            state=data.get("stateOfIncorporation") or business.get("stateOrCountry") or None,
            fiscal_year_end=data.get("fiscalYearEnd") or None,
            exchanges=[str(e) for e in data.get("exchanges") or [] if e],
            entity_type=data.get("entityType") or None,
            ein=data.get("ein") or None,
            recent_filings=filings,
            source=SEC_SOURCE,
        )
