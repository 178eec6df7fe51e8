import logging

from safario.config import settings
from safario.core.exceptions import UpstreamServiceError
from safario.services.http import fetch_json

logger = logging.getLogger(__name__)

DEFAULT_AREA_NAME = "Your Area"

def _object(data, service: str) -> dict:
    if not isinstance(data, dict):
        logger.error(f"{service} returned {type(data).__name__} instead of an object")
        raise UpstreamServiceError(service, "unexpected payload")
    return data

def get_map_token() -> str:
    """Token for the client map renderer; empty when not configured."""
    return settings.MAPBOX_TOKEN or ""

async def reverse_geocode(latitude: float, longitude: float) -> str:
    """Resolve coordinates to a city-level place name"""
    if settings.MAPBOX_TOKEN:
        data = await fetch_json(
            f"{settings.MAPBOX_GEOCODING_URL}/{longitude},{latitude}.json",
            service="mapbox",
            params={
                "types": "place,locality,district",
                "access_token": settings.MAPBOX_TOKEN,
            },
        )
        features = _object(data, "mapbox").get("features")
        if isinstance(features, list) and features and isinstance(features[0], dict):
            first = features[0]
            name = first.get("text") or str(first.get("place_name") or "").split(",")[0]
            if name and isinstance(name, str):
                return name
        return DEFAULT_AREA_NAME

    data = await fetch_json(
        settings.NOMINATIM_URL,
        service="nominatim",
        params={
            "format": "json",
            "lat": latitude,
            "lon": longitude,
            "zoom": 10,
            "addressdetails": 1,
        },
        headers={"User-Agent": settings.NOMINATIM_USER_AGENT},
    )
    address = _object(data, "nominatim").get("address")
    if not isinstance(address, dict):
        return DEFAULT_AREA_NAME
    for key in ("city", "town", "state_district", "state"):
        if address.get(key) and isinstance(address[key], str):
            return address[key]
    return DEFAULT_AREA_NAME
