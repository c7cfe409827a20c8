"""
Google Places web service client (aiohttp).

Only ``place_id`` has meaning to the rest of the client; every other field
the provider returns is carried through ``Place`` untouched.
"""

import asyncio
from typing import Any, Dict, Iterable, List, Optional, Sequence
from urllib.parse import urlencode

import aiohttp
import structlog
from pydantic import ValidationError

from client.src.errors import NetworkError, PlacesError
from shared.models import Place, dedupe_places

logger = structlog.get_logger(__name__)

DEFAULT_DETAIL_FIELDS = (
    "name",
    "formatted_address",
    "geometry",
    "photos",
    "rating",
    "user_ratings_total",
    "types",
    "reviews",
    "website",
    "formatted_phone_number",
    "opening_hours",
    "price_level",
)

DEFAULT_RADIUS = 1500


class PlacesClient:
    """Nearby search, details, photo URLs and geocoding."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        api_key: str,
        base_url: str = "https://maps.googleapis.com/maps/api",
        timeout: float = 10.0,
        default_radius: int = DEFAULT_RADIUS
    ):
        self.session = session
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.default_radius = default_radius

    async def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        query = dict(params, key=self.api_key)
        url = f"{self.base_url}{path}"
        try:
            async with self.session.get(url, params=query, timeout=self.timeout) as response:
                if response.status >= 400:
                    raise PlacesError(f"HTTP error: {response.status}")
                body = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning("places_request_failed", path=path, error=str(e))
            raise NetworkError(str(e) or "Places request failed", cause=e) from e
        except ValueError as e:
            raise PlacesError("Malformed provider response") from e

        if not isinstance(body, dict):
            raise PlacesError("Malformed provider response")
        return body

    @staticmethod
    def _places(results: Iterable[Dict[str, Any]]) -> List[Place]:
        places = []
        for item in results:
            try:
                places.append(Place.model_validate(item))
            except ValidationError:
                logger.debug("places_result_skipped", reason="missing place_id")
        return places

    async def search_nearby(
        self,
        lat: float,
        lng: float,
        category: str,
        radius: Optional[int] = None
    ) -> List[Place]:
        """
        Places of one category around a point.

        Raises:
            PlacesError: Provider status other than OK or ZERO_RESULTS
        """
        body = await self._get(
            "/place/nearbysearch/json",
            {
                "location": f"{lat},{lng}",
                "radius": radius or self.default_radius,
                "type": category,
            }
        )
        status = body.get("status")
        if status == "ZERO_RESULTS":
            return []
        if status != "OK":
            logger.warning("places_search_rejected", category=category, status=status)
            raise PlacesError(f"API error: {status}")
        return self._places(body.get("results") or [])

    async def search_nearby_for_types(
        self,
        lat: float,
        lng: float,
        categories: Sequence[str],
        radius: Optional[int] = None
    ) -> List[Place]:
        """
        One nearby search per category, merged in category order.

        Duplicates are dropped by ``place_id`` (first occurrence wins).
        Categories the provider rejects are skipped.
        """
        results = await asyncio.gather(
            *(self.search_nearby(lat, lng, category, radius) for category in categories),
            return_exceptions=True
        )

        merged: List[Place] = []
        for category, result in zip(categories, results):
            if isinstance(result, PlacesError):
                logger.info("places_category_skipped", category=category, error=str(result))
                continue
            if isinstance(result, BaseException):
                raise result
            merged.extend(result)
        return dedupe_places(merged)

    async def get_details(
        self,
        place_id: str,
        fields: Sequence[str] = DEFAULT_DETAIL_FIELDS
    ) -> Place:
        """
        Full record for one place.

        Raises:
            PlacesError: Provider status other than OK
        """
        body = await self._get(
            "/place/details/json",
            {"place_id": place_id, "fields": ",".join(fields)}
        )
        status = body.get("status")
        if status != "OK" or not isinstance(body.get("result"), dict):
            raise PlacesError(f"API error: {status}")
        # Details responses omit place_id unless it was requested.
        return Place.model_validate({"place_id": place_id, **body["result"]})

    def get_photo_url(self, photo_reference: str, max_width: int = 400) -> str:
        query = urlencode({
            "maxwidth": max_width,
            "photoreference": photo_reference,
            "key": self.api_key,
        })
        return f"{self.base_url}/place/photo?{query}"

    async def geocode(self, address: str) -> Dict[str, float]:
        """
        Coordinates of the best match for ``address``.

        Raises:
            PlacesError: "Could not find location" when nothing matches
        """
        body = await self._get("/geocode/json", {"address": address})
        results = body.get("results") or []
        if body.get("status") != "OK" or not results:
            raise PlacesError("Could not find location")

        location = results[0].get("geometry", {}).get("location", {})
        try:
            return {"lat": float(location["lat"]), "lng": float(location["lng"])}
        except (KeyError, TypeError, ValueError) as e:
            raise PlacesError("Could not find location") from e
