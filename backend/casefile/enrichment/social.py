"""Social-profile verification.

GitHub exposes a public read-only users API, so it is verified
automatically.  Every other platform gets a manual-check outcome: a profile
URL and instructions for the analyst, who reports the result by hand.
"""

from __future__ import annotations

import logging
import re

import httpx

from casefile.enrichment.base import ProviderClient
from casefile.models.outcomes import ErrorCode, LookupFailure, SocialOutcome, SocialVerification

logger = logging.getLogger(__name__)

GITHUB_USERS_URL = "https://api.github.com/users/{handle}"

AUTOMATED_PLATFORMS: frozenset[str] = frozenset({"github"})

# Normalized platform key -> (display name, lookup key)
_PLATFORMS: dict[str, tuple[str, str]] = {
    "linkedin": ("LinkedIn", "linkedin"),
    "twitter": ("Twitter/X", "twitter"),
    "x": ("Twitter/X", "twitter"),
    "twitterx": ("Twitter/X", "twitter"),
    "instagram": ("Instagram", "instagram"),
    "facebook": ("Facebook", "facebook"),
    "tiktok": ("TikTok", "tiktok"),
    "strava": ("Strava", "strava"),
    "youtube": ("YouTube", "youtube"),
    "reddit": ("Reddit", "reddit"),
    "snapchat": ("Snapchat", "snapchat"),
    "telegram": ("Telegram", "telegram"),
    "venmo": ("Venmo", "venmo"),
    "whatsapp": ("WhatsApp", "whatsapp"),
    "signal": ("Signal", "signal"),
}

_PROFILE_URLS: dict[str, str] = {
    "linkedin": "https://www.linkedin.com/in/{handle}",
    "twitter": "https://twitter.com/{handle}",
    "instagram": "https://www.instagram.com/{handle}/",
    "facebook": "https://www.facebook.com/{handle}",
    "tiktok": "https://www.tiktok.com/@{handle}",
    "strava": "https://www.strava.com/athletes/{handle}",
    "youtube": "https://www.youtube.com/@{handle}",
    "reddit": "https://www.reddit.com/user/{handle}",
    "snapchat": "https://www.snapchat.com/add/{handle}",
    "telegram": "https://t.me/{handle}",
    "venmo": "https://venmo.com/{handle}",
    # No public profile pages; the analyst searches in-app.
    "whatsapp": "https://www.whatsapp.com",
    "signal": "https://signal.org",
}

_INSTRUCTIONS: dict[str, str] = {
    "linkedin": "Open profile link to verify. Note: follower count, headline, and public visibility.",
    "twitter": "Open profile link to verify. Note: follower count, bio, join date, and whether posts are protected.",
    "instagram": "Open profile link to verify. Note: follower count, post count, bio, and whether the account is private.",
    "facebook": "Open profile link to verify. Note: public visibility and available information.",
    "tiktok": "Open profile link to verify. Note: follower count, video count, bio.",
    "strava": "Open profile link to verify. Check whether activities are public: they expose GPS routes and schedules.",
    "youtube": "Open channel link to verify. Note: subscriber count, video count, channel description.",
    "reddit": "Open profile link to verify. Note: post history, karma, account age.",
    "snapchat": "Open profile link to verify. Note: display name and Bitmoji.",
    "telegram": "Open profile link to verify. Note: bio and public visibility.",
    "venmo": "Open profile link to verify. Note: public transaction visibility.",
    "whatsapp": "Search for the handle on WhatsApp to verify presence.",
    "signal": "Search for the handle on Signal to verify presence.",
    "other": "Search for this account manually to verify.",
}


def normalize_platform(platform: str) -> str:
    return re.sub(r"[/\s]", "", platform.lower()).strip()


def supports_automated_verification(platform: str | None) -> bool:
    return bool(platform) and normalize_platform(platform) in AUTOMATED_PLATFORMS


def clean_handle(handle: str) -> str:
    return handle.strip().lstrip("@")


def profile_url(platform_key: str, handle: str) -> str | None:
    template = _PROFILE_URLS.get(platform_key)
    return template.format(handle=clean_handle(handle)) if template else None


class SocialVerifier(ProviderClient):
    name = "GitHub"

    def __init__(
        self,
        github_token: str | None = None,
        http: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        super().__init__(http=http, timeout=timeout)
        self.github_token = github_token

    async def verify(self, platform: str, handle: str) -> SocialOutcome:
        key = normalize_platform(platform)
        if key == "github":
            return await self._verify_github(handle)
        display_name, lookup_key = _PLATFORMS.get(key, (platform, "other"))
        return self._manual_check(display_name, lookup_key, handle)

    async def _verify_github(self, handle: str) -> SocialOutcome:
        login = re.sub(r"https?://(www\.)?github\.com/", "", clean_handle(handle), flags=re.I)
        login = login.split("/")[0]
        if not login:
            return SocialVerification(verified=False, platform="GitHub", reason="Empty handle")

        headers = {"Accept": "application/vnd.github+json"}
        if self.github_token:
            headers["Authorization"] = f"Bearer {self.github_token}"

        try:
            response = await self._get(GITHUB_USERS_URL.format(handle=login), headers=headers)
        except httpx.HTTPError as exc:
            return self._network_failure(exc)

        if response.status_code == 404:
            return SocialVerification(verified=False, platform="GitHub", handle=login, reason="Profile not found")
        if response.status_code in (403, 429):
            return LookupFailure(error=ErrorCode.RATE_LIMITED, message="GitHub rate limit reached. Try again later.")
        if not response.is_success:
            return LookupFailure(
                error=ErrorCode.NETWORK_ERROR,
                message=f"GitHub lookup failed with status {response.status_code}",
            )

        try:
            data = response.json()
            return SocialVerification(
                verified=True,
                platform="GitHub",
                handle=data.get("login") or login,
                url=data.get("html_url"),
                display_name=data.get("name"),
                bio=data.get("bio"),
                followers=data.get("followers"),
                following=data.get("following"),
                public_repos=data.get("public_repos"),
                created=data.get("created_at"),
                visibility="public",
                metadata={
                    "company": data.get("company"),
                    "location": data.get("location"),
                    "blog": data.get("blog"),
                },
                source="GitHub API",
            )
        except (ValueError, TypeError, AttributeError) as exc:
            return self._network_failure(exc)

    @staticmethod
    def _manual_check(display_name: str, platform_key: str, handle: str) -> SocialVerification:
        return SocialVerification(
            verified=None,
            platform=display_name,
            handle=clean_handle(handle),
            url=profile_url(platform_key, handle),
            manual_check=True,
            instructions=_INSTRUCTIONS.get(platform_key, "Open profile link to verify."),
        )
