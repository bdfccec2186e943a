"""Breach-database client (HaveIBeenPwned v3).

All calls share one :class:`RateLimiter`, so no two requests leave less
than the minimum interval between dispatches however many callers are
waiting.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable
from typing import Any
from urllib.parse import quote

import httpx

from casefile.config import BREACH_MIN_INTERVAL
from casefile.enrichment.base import ProviderClient
from casefile.enrichment.rate_limit import RateLimiter
from casefile.models.outcomes import (
    BreachCheckResult,
    BreachOutcome,
    ErrorCode,
    LookupFailure,
)
from casefile.models.profile import BreachRecord, Severity

logger = logging.getLogger(__name__)

HIBP_BREACHED_ACCOUNT_URL = "https://haveibeenpwned.com/api/v3/breachedaccount/{email}"
HIBP_SOURCE = "HaveIBeenPwned"
USER_AGENT = "casefile-enrichment"
MAX_EMAIL_LENGTH = 254

ProgressCallback = Callable[[int, int, str | None], None]

_HTML_TAG = re.compile(r"<[^>]*>")
_HIGH_MARKERS = ("password", "credit card", "financial", "phone", "ssn")


def strip_html(html: str) -> str:
    return _HTML_TAG.sub("", html)


def classify_breach_severity(data_types: Iterable[str]) -> Severity:
    """Classify a breach by the kinds of data it exposed.

    Passwords, financial data, phone numbers, physical addresses and SSNs
    are ``high``; email-only exposure is ``medium``; anything else is
    ``low``.
    """
    classes = [d.lower() for d in data_types]
    for c in classes:
        if any(marker in c for marker in _HIGH_MARKERS):
            return Severity.HIGH
        # "Email addresses" is not a physical address.
        if "address" in c and "email" not in c:
            return Severity.HIGH
    if any("email" in c for c in classes):
        return Severity.MEDIUM
    return Severity.LOW


def is_valid_email(email: str | None) -> bool:
    return bool(email) and "@" in email and len(email) <= MAX_EMAIL_LENGTH


_default_limiter: RateLimiter | None = None


def get_default_limiter() -> RateLimiter:
    """Return the process-wide limiter shared by every breach client."""
    global _default_limiter
    if _default_limiter is None:
        _default_limiter = RateLimiter(BREACH_MIN_INTERVAL)
    return _default_limiter


class BreachClient(ProviderClient):
    """Look up the breaches an email address appears in."""

    name = HIBP_SOURCE

    def __init__(
        self,
        api_key: str | None,
        limiter: RateLimiter | None = None,
        http: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        super().__init__(http=http, timeout=timeout)
        self.api_key = api_key
        self.limiter = limiter or get_default_limiter()

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def check_breaches(self, email: str) -> BreachOutcome:
        if not self.api_key:
            return LookupFailure(
                error=ErrorCode.NO_API_KEY,
                message="HIBP API key not configured. Set HIBP_API_KEY in ~/.casefile/.env.",
            )
        if not is_valid_email(email):
            return LookupFailure(error=ErrorCode.INVALID_EMAIL, message="Invalid email address")

        try:
            async with self.limiter:
                response = await self._get(
                    HIBP_BREACHED_ACCOUNT_URL.format(email=quote(email)),
                    params={"truncateResponse": "false"},
                    headers={"hibp-api-key": self.api_key, "user-agent": USER_AGENT},
                )
        except httpx.HTTPError as exc:
            return self._network_failure(exc)

        if response.status_code == 404:
            return BreachCheckResult(found=False)
        if response.status_code == 429:
            return LookupFailure(
                error=ErrorCode.RATE_LIMITED,
                message="Rate limited. Try again in a few seconds.",
            )
        if response.status_code == 401:
            return LookupFailure(error=ErrorCode.NO_API_KEY, message="HIBP rejected the API key")
        if not response.is_success:
            return LookupFailure(
                error=ErrorCode.NETWORK_ERROR,
                message=f"HIBP request failed with status {response.status_code}",
            )

        try:
            payload = response.json()
            breaches = [
                self._normalize(email, raw) for raw in payload or [] if isinstance(raw, dict)
            ]
        except (ValueError, TypeError) as exc:
            return self._network_failure(exc)

        if not breaches:
            return BreachCheckResult(found=False)
        logger.info("%d breach(es) found for %s", len(breaches), email)
        return BreachCheckResult(found=True, breaches=breaches, count=len(breaches))

    async def check_multiple(
        self,
        emails: list[str],
        on_progress: ProgressCallback | None = None,
    ) -> dict[str, BreachOutcome]:
        """Check *emails* one after another and map each to its outcome.

        Requests are never issued in parallel.  *on_progress* receives
        ``(index, total, email)`` before each call and ``(total, total,
        None)`` once every email is done.
        """
        results: dict[str, BreachOutcome] = {}
        total = len(emails)
        for index, email in enumerate(emails):
            if on_progress:
                on_progress(index, total, email)
            results[email] = await self.check_breaches(email)
        if on_progress:
            on_progress(total, total, None)
        return results

    @staticmethod
    def _normalize(email: str, raw: dict[str, Any]) -> BreachRecord:
        name = raw.get("Name") or raw.get("Title") or "Unknown"
        date = raw.get("BreachDate")
        year = date[:4] if isinstance(date, str) and date[:4].isdigit() else None
        data_types = [str(d) for d in raw.get("DataClasses") or []]
        pwn_count = raw.get("PwnCount")
        affected = f"{pwn_count:,}" if isinstance(pwn_count, int) else "Unknown"
        description = strip_html(raw.get("Description") or "")[:150]
        return BreachRecord(
            breach_name=f"{name} ({year})" if year else name,
            date=date,
            email_exposed=email,
            data_types=data_types,
            severity=classify_breach_severity(data_types),
            notes=f"{affected} accounts affected. {description}".strip(),
            source=HIBP_SOURCE,
            hibp_name=name,
        )
