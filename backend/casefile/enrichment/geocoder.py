"""Address geocoding through the Mapbox places API."""

from __future__ import annotations

import logging
from urllib.parse import quote

import httpx

from casefile.enrichment.base import ProviderClient
from casefile.models.outcomes import ErrorCode, GeocodeOutcome, GeocodeResult, LookupFailure
from casefile.models.profile import Address

logger = logging.getLogger(__name__)

MAPBOX_PLACES_URL = "https://api.mapbox.com/geocoding/v5/mapbox.places/{query}.json"
MIN_QUERY_LENGTH = 5


def address_query(address: Address) -> str:
    parts = [address.street, address.city, address.state, address.zip, address.country]
    return ", ".join(part for part in parts if part)


class Geocoder(ProviderClient):
    name = "Mapbox"

    def __init__(
        self,
        token: str | None,
        http: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        super().__init__(http=http, timeout=timeout)
        self.token = token

    @property
    def configured(self) -> bool:
        return bool(self.token)

    async def geocode_address(self, address: Address) -> GeocodeOutcome:
        return await self.geocode(address_query(address))

    async def geocode(self, query: str, types: str = "address,place") -> GeocodeOutcome:
        if not self.token:
            return LookupFailure(
                error=ErrorCode.NO_API_KEY,
                message="Mapbox token not configured. Set MAPBOX_TOKEN in ~/.casefile/.env.",
            )
        if len(query.strip()) < MIN_QUERY_LENGTH:
            return LookupFailure(error=ErrorCode.INVALID_QUERY, message="Address too short to geocode")

        try:
            response = await self._get(
                MAPBOX_PLACES_URL.format(query=quote(query, safe="")),
                params={"access_token": self.token, "limit": 1, "types": types},
            )
        except httpx.HTTPError as exc:
            return self._network_failure(exc)

        if response.status_code == 401:
            return LookupFailure(error=ErrorCode.NO_API_KEY, message="Mapbox rejected the token")
        if response.status_code == 429:
            return LookupFailure(error=ErrorCode.RATE_LIMITED, message="Geocoding rate limit reached")
        if not response.is_success:
            return LookupFailure(
                error=ErrorCode.NETWORK_ERROR,
                message=f"Geocoding request failed with status {response.status_code}",
            )

        try:
            features = response.json().get("features") or []
            if not features:
                return GeocodeResult(found=False)
            top = features[0]
            lng, lat = top["center"]
            return GeocodeResult(
                found=True,
                coordinates=[float(lng), float(lat)],
                formatted_address=top.get("place_name"),
                confidence=top.get("relevance"),
            )
        except (ValueError, TypeError, KeyError, AttributeError) as exc:
            return self._network_failure(exc)
