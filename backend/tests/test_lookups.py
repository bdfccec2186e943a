"""
Tests for the geocoding, social, company and broker lookups.
"""

import httpx
import pytest

from casefile.enrichment.brokers import BROKERS, generate_broker_check_urls
from casefile.enrichment.company import CompanyLookup
from casefile.enrichment.geocoder import Geocoder, address_query
from casefile.enrichment.social import SocialVerifier, supports_automated_verification
from casefile.models.outcomes import ErrorCode, LookupFailure
from casefile.models.profile import Address

TICKERS = {
    "0": {"cik_str": 320193, "ticker": "AAPL", "title": "Apple Inc."},
    "1": {"cik_str": 1018724, "ticker": "AMZN", "title": "AMAZON COM INC"},
    "2": {"cik_str": 1652044, "ticker": "GOOGL", "title": "Alphabet Inc."},
}

SUBMISSIONS = {
    "cik": "320193",
    "name": "Apple Inc.",
    "tickers": ["AAPL"],
    "exchanges": ["Nasdaq"],
    "sic": "3571",
    "sicDescription": "Electronic Computers",
    "stateOfIncorporation": "CA",
    "fiscalYearEnd": "0928",
    "entityType": "operating",
    "filings": {
        "recent": {
            "form": ["10-K", "8-K"],
            "filingDate": ["2024-11-01", "2024-10-31"],
            "accessionNumber": ["0000320193-24-000123", "0000320193-24-000120"],
            "primaryDocDescription": ["10-K", "8-K"],
        }
    },
}


class TestGeocoder:
    """Test Mapbox geocoding outcomes."""

    def test_address_query_skips_empty_parts(self):
        address = Address(street="1 Elm St", city="Springfield", state=None, country="US")
        assert address_query(address) == "1 Elm St, Springfield, US"

    @pytest.mark.asyncio
    async def test_missing_token(self, mock_http):
        geocoder = Geocoder(token=None, http=mock_http(lambda r: httpx.Response(500)))

        outcome = await geocoder.geocode("1 Elm St, Springfield")

        assert outcome.error == ErrorCode.NO_API_KEY

    @pytest.mark.asyncio
    async def test_short_query_rejected(self, mock_http):
        calls = []
        geocoder = Geocoder(token="tok", http=mock_http(lambda r: calls.append(r) or httpx.Response(200)))

        outcome = await geocoder.geocode_address(Address(city="NY"))

        assert outcome.error == ErrorCode.INVALID_QUERY
        assert calls == []

    @pytest.mark.asyncio
    async def test_match(self, mock_http):
        def handler(request):
            assert request.url.params["access_token"] == "tok"
            return httpx.Response(
                200,
                json={
                    "features": [
                        {
                            "center": [-89.65, 39.78],
                            "place_name": "1 Elm St, Springfield, Illinois 62701, United States",
                            "relevance": 0.97,
                        }
                    ]
                },
            )

        geocoder = Geocoder(token="tok", http=mock_http(handler))

        outcome = await geocoder.geocode_address(Address(street="1 Elm St", city="Springfield"))

        assert outcome.found is True
        assert outcome.coordinates == [-89.65, 39.78]
        assert outcome.confidence == 0.97
        assert outcome.formatted_address.startswith("1 Elm St")

    @pytest.mark.asyncio
    async def test_no_match(self, mock_http):
        geocoder = Geocoder(token="tok", http=mock_http(lambda r: httpx.Response(200, json={"features": []})))

        outcome = await geocoder.geocode("Nowhere Lane, Atlantis")

        assert outcome.found is False
        assert outcome.coordinates is None

    @pytest.mark.asyncio
    async def test_timeout_is_network_error(self, mock_http):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        geocoder = Geocoder(token="tok", http=mock_http(handler))

        outcome = await geocoder.geocode("1 Elm St, Springfield")

        assert outcome.error == ErrorCode.NETWORK_ERROR


class TestSocialVerifier:
    """Test automated and manual social verification."""

    def test_only_github_is_automated(self):
        assert supports_automated_verification("GitHub")
        assert not supports_automated_verification("LinkedIn")
        assert not supports_automated_verification(None)

    @pytest.mark.asyncio
    async def test_github_profile_found(self, mock_http):
        def handler(request):
            assert request.url.path == "/users/octocat"
            return httpx.Response(
                200,
                json={
                    "login": "octocat",
                    "html_url": "https://github.com/octocat",
                    "name": "The Octocat",
                    "followers": 42,
                    "following": 9,
                    "public_repos": 8,
                    "created_at": "2011-01-25T18:44:36Z",
                },
            )

        verifier = SocialVerifier(http=mock_http(handler))

        outcome = await verifier.verify("GitHub", "https://github.com/octocat")

        assert outcome.verified is True
        assert outcome.handle == "octocat"
        assert outcome.followers == 42
        assert outcome.visibility == "public"

    @pytest.mark.asyncio
    async def test_github_profile_missing(self, mock_http):
        verifier = SocialVerifier(http=mock_http(lambda r: httpx.Response(404)))

        outcome = await verifier.verify("github", "@ghost-user")

        assert outcome.verified is False
        assert outcome.reason == "Profile not found"

    @pytest.mark.asyncio
    async def test_github_rate_limit_is_typed_failure(self, mock_http):
        verifier = SocialVerifier(
            http=mock_http(lambda r: httpx.Response(403, json={"message": "API rate limit exceeded"}))
        )

        outcome = await verifier.verify("GitHub", "octocat")

        assert isinstance(outcome, LookupFailure)
        assert outcome.error == ErrorCode.RATE_LIMITED

    @pytest.mark.asyncio
    async def test_github_server_error_is_network_error(self, mock_http):
        verifier = SocialVerifier(http=mock_http(lambda r: httpx.Response(502)))

        outcome = await verifier.verify("GitHub", "octocat")

        assert isinstance(outcome, LookupFailure)
        assert outcome.error == ErrorCode.NETWORK_ERROR
        assert "502" in outcome.message

    @pytest.mark.asyncio
    async def test_other_platform_needs_manual_check(self, mock_http):
        calls = []
        verifier = SocialVerifier(http=mock_http(lambda r: calls.append(r) or httpx.Response(200)))

        outcome = await verifier.verify("Instagram", "@jane.roe")

        assert outcome.verified is None
        assert outcome.manual_check is True
        assert outcome.url == "https://www.instagram.com/jane.roe/"
        assert "private" in outcome.instructions
        assert calls == []

    @pytest.mark.asyncio
    async def test_unknown_platform(self):
        outcome = await SocialVerifier().verify("Mastodon", "jane")

        assert outcome.manual_check is True
        assert outcome.url is None
        assert outcome.instructions == "Search for this account manually to verify."


class TestCompanyLookup:
    """Test SEC EDGAR search and details."""

    @pytest.mark.asyncio
    async def test_short_name_rejected(self, mock_http):
        lookup = CompanyLookup(user_agent="test ua", http=mock_http(lambda r: httpx.Response(500)))

        outcome = await lookup.search("Ap")

        assert outcome.error == ErrorCode.INVALID_QUERY

    @pytest.mark.asyncio
    async def test_search_matches_title_or_ticker_and_caches(self, mock_http, clock):
        calls = []

        def handler(request):
            calls.append(request)
            assert request.headers["user-agent"] == "test ua"
            return httpx.Response(200, json=TICKERS)

        lookup = CompanyLookup(user_agent="test ua", http=mock_http(handler), clock=clock)

        by_title = await lookup.search("apple")
        by_ticker = await lookup.search("googl")

        assert [m.name for m in by_title.results] == ["Apple Inc."]
        assert by_title.results[0].cik == 320193
        assert by_ticker.results[0].ticker == "GOOGL"
        assert len(calls) == 1

        clock.advance(31 * 60)
        await lookup.search("amazon")
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_details_normalized(self, mock_http):
        def handler(request):
            assert request.url.path == "/submissions/CIK0000320193.json"
            return httpx.Response(200, json=SUBMISSIONS)

        lookup = CompanyLookup(user_agent="test ua", http=mock_http(handler))

        details = await lookup.details(320193)

        assert details.name == "Apple Inc."
        assert details.ticker == "AAPL"
        assert details.sic_description == "Electronic Computers"
        assert details.state == "CA"
        assert details.entity_type == "operating"
        assert [f.form for f in details.recent_filings] == ["10-K", "8-K"]
        assert details.recent_filings[0].date == "2024-11-01"

    @pytest.mark.asyncio
    async def test_details_failure(self, mock_http):
        lookup = CompanyLookup(user_agent="test ua", http=mock_http(lambda r: httpx.Response(503)))

        outcome = await lookup.details("320193")

        assert isinstance(outcome, LookupFailure)
        assert outcome.error == ErrorCode.NETWORK_ERROR


class TestBrokerUrls:
    """Test people-search URL generation."""

    def test_one_link_per_broker(self):
        links = generate_broker_check_urls("Jane Q. Roe", "IL")

        assert len(links) == len(BROKERS) == 8
        spokeo = links[0]
        assert spokeo.name == "Spokeo"
        assert spokeo.url == "https://www.spokeo.com/jane-roe/il"
        assert spokeo.status == "unchecked"

    def test_middle_initial_dropped(self):
        links = generate_broker_check_urls("Jane Q. Roe", "Illinois")

        assert all("q." not in link.url.lower() for link in links)
        assert "jane-roe" in links[1].url

    def test_missing_inputs(self):
        assert generate_broker_check_urls("", "IL") == []
        assert generate_broker_check_urls("Jane Roe", None) == []
        assert generate_broker_check_urls("Jane Roe", "  ") == []
