import math
import logging
from typing import Any, Dict

from safario.config import settings
from safario.core.exceptions import UpstreamServiceError
from safario.services.http import fetch_json

logger = logging.getLogger(__name__)

def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))

def parse_weather(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Reshape an OpenWeatherMap current-weather payload.
    Readings are taken from the "main" block, or from the top level when
    the payload is already flat.
    """
    try:
        readings = data.get("main", data)
        conditions = data.get("weather") or [{}]
        return {
            "temp": _round_half_up(float(readings["temp"])),
            "condition": conditions[0]["main"],
            "humidity": readings["humidity"],
            "description": conditions[0].get("description", ""),
        }
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise UpstreamServiceError("weather", f"unexpected payload: {e}")

async def get_weather(latitude: float, longitude: float) -> Dict[str, Any]:
    if not settings.OPENWEATHERMAP_API_KEY:
        raise UpstreamServiceError("weather", "OpenWeatherMap API key not configured")

    data = await fetch_json(
        settings.OPENWEATHERMAP_URL,
        service="weather",
        params={
            "lat": latitude,
            "lon": longitude,
            "units": "metric",
            "appid": settings.OPENWEATHERMAP_API_KEY,
        },
    )
    weather = parse_weather(data)
    logger.info(f"Weather at {latitude:.3f},{longitude:.3f}: {weather['condition']} {weather['temp']}C")
    return weather
