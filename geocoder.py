"""Address and postal code lookup through the Google Geocoding API."""

import logging
from functools import lru_cache
from typing import Optional

import requests
from pydantic import BaseModel

import config
from errors import UpstreamError

logger = logging.getLogger(__name__)


class GeocodeResult(BaseModel):
    latitude: float
    longitude: float
    formattedAddress: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zipcode: Optional[str] = None
    country: Optional[str] = None

    def to_location(self) -> dict:
        return {
            "type": "Point",
            "coordinates": [self.longitude, self.latitude],
            "formattedAddress": self.formattedAddress,
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "zipcode": self.zipcode,
            "country": self.country,
        }


def _component(components, kind: str, short: bool = False) -> Optional[str]:
    for c in components:
        if kind in c.get("types", []):
            return c.get("short_name" if short else "long_name")
    return None


class Geocoder:
    def __init__(self, api_key: str, url: str):
        self.api_key = api_key
        self.url = url

    def geocode(self, address: str) -> Optional[GeocodeResult]:
        """Resolve an address or postal code. Returns None when nothing matches."""
        try:
            resp = requests.get(self.url, params={"address": address, "key": self.api_key}, timeout=10)
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            logger.error("Geocoding %r failed: %s", address, e)
            raise UpstreamError("Geocoding service unavailable")

        status = data.get("status")
        if status == "ZERO_RESULTS":
            return None
        if status != "OK" or not data.get("results"):
            logger.error("Geocoding %r returned status %s", address, status)
            raise UpstreamError("Geocoding service unavailable")

        first = data["results"][0]
        point = first["geometry"]["location"]
        components = first.get("address_components", [])
        number = _component(components, "street_number")
        route = _component(components, "route")
        return GeocodeResult(
            latitude=point["lat"],
            longitude=point["lng"],
            formattedAddress=first.get("formatted_address"),
            street=" ".join(p for p in (number, route) if p) or None,
            city=_component(components, "locality"),
            state=_component(components, "administrative_area_level_1", short=True),
            zipcode=_component(components, "postal_code"),
            country=_component(components, "country", short=True),
        )


@lru_cache
def get_geocoder() -> Geocoder:
    return Geocoder(config.GEOCODER_API_KEY, config.GEOCODER_URL)
