import asyncio
import json
from unittest.mock import AsyncMock, patch

import pytest

from safario.config import settings
from safario.core.exceptions import UpstreamServiceError
from safario.services import maps, places, weather
from safario.services.http import fetch_json

def test_parse_flat_weather_payload():
    data = {"temp": 21.6, "weather": [{"main": "Rain"}], "humidity": 80}
    result = weather.parse_weather(data)
    assert result["temp"] == 22
    assert result["condition"] == "Rain"
    assert result["humidity"] == 80

def test_parse_openweathermap_payload():
    data = {
        "main": {"temp": 30.5, "humidity": 41},
        "weather": [{"main": "Clear", "description": "clear sky"}],
    }
    assert weather.parse_weather(data) == {
        "temp": 31,
        "condition": "Clear",
        "humidity": 41,
        "description": "clear sky",
    }

def test_parse_weather_rejects_garbage():
    with pytest.raises(UpstreamServiceError):
        weather.parse_weather({"unexpected": True})

def test_get_weather_requires_key(monkeypatch):
    monkeypatch.setattr(settings, "OPENWEATHERMAP_API_KEY", None)
    with pytest.raises(UpstreamServiceError):
        asyncio.run(weather.get_weather(23.0, 72.5))

def test_get_weather_calls_metric_api(monkeypatch):
    monkeypatch.setattr(settings, "OPENWEATHERMAP_API_KEY", "key")
    payload = {"main": {"temp": 19.4, "humidity": 70}, "weather": [{"main": "Clouds"}]}
    with patch("safario.services.weather.fetch_json", new=AsyncMock(return_value=payload)) as fetch:
        result = asyncio.run(weather.get_weather(23.0, 72.5))

    assert result["temp"] == 19
    assert fetch.call_args.kwargs["params"]["units"] == "metric"

def test_reverse_geocode_nominatim(monkeypatch):
    monkeypatch.setattr(settings, "MAPBOX_TOKEN", None)
    payload = {"address": {"state_district": "Indore", "state": "Madhya Pradesh"}}
    with patch("safario.services.maps.fetch_json", new=AsyncMock(return_value=payload)) as fetch:
        assert asyncio.run(maps.reverse_geocode(22.72, 75.86)) == "Indore"

    headers = fetch.call_args.kwargs["headers"]
    assert headers["User-Agent"] == settings.NOMINATIM_USER_AGENT

def test_reverse_geocode_mapbox(monkeypatch):
    monkeypatch.setattr(settings, "MAPBOX_TOKEN", "pk.test")
    payload = {"features": [{"text": "Bengaluru", "place_name": "Bengaluru, Karnataka, India"}]}
    with patch("safario.services.maps.fetch_json", new=AsyncMock(return_value=payload)):
        assert asyncio.run(maps.reverse_geocode(12.97, 77.59)) == "Bengaluru"

def test_reverse_geocode_defaults_when_empty(monkeypatch):
    monkeypatch.setattr(settings, "MAPBOX_TOKEN", None)
    with patch("safario.services.maps.fetch_json", new=AsyncMock(return_value={})):
        assert asyncio.run(maps.reverse_geocode(0.0, 0.0)) == maps.DEFAULT_AREA_NAME

def test_map_token_fails_closed(monkeypatch):
    monkeypatch.setattr(settings, "MAPBOX_TOKEN", None)
    assert maps.get_map_token() == ""

@pytest.mark.parametrize("name, key", [
    ("Ahmedabad", "ahmedabad"),
    ("Bengaluru", "bangalore"),
    ("New Delhi", "delhi"),
    ("Greater Mumbai", "mumbai"),
    ("Paris", None),
    ("", None),
    ("   ", None),
])
def test_match_city(name, key):
    assert places.match_city(name) == key

def test_format_distance():
    assert places.format_distance(850) == "850m"
    assert places.format_distance(1234) == "1.2km"

def test_places_sorted_and_capped():
    with patch("safario.services.places.reverse_geocode", new=AsyncMock(return_value="Ahmedabad")):
        result = asyncio.run(places.get_places(23.03, 72.58))

    assert result["city"] == "Ahmedabad"
    found = result["places"]
    assert len(found) <= places.MAX_PLACES
    distances = [p["distance_m"] for p in found]
    assert distances == sorted(distances)
    assert found[0]["directionsUrl"].startswith("https://www.google.com/maps/dir/?api=1&origin=23.03,72.58")

def test_unknown_city_gets_default_list():
    with patch("safario.services.places.reverse_geocode", new=AsyncMock(return_value="Reykjavik")):
        result = asyncio.run(places.get_places(64.14, -21.94))

    assert result["city"] == "Reykjavik"
    assert [p["name"] for p in result["places"]] == [p["name"] for p in places.DEFAULT_PLACES]
    assert "tourist+attractions/@64.14,-21.94" in result["places"][0]["directionsUrl"]

def test_geocoder_failure_is_masked():
    failing = AsyncMock(side_effect=UpstreamServiceError("nominatim", "timeout"))
    with patch("safario.services.places.reverse_geocode", new=failing):
        result = asyncio.run(places.get_places(23.03, 72.58))

    assert result["city"] == places.FALLBACK_CITY
    assert len(result["places"]) == len(places.DEFAULT_PLACES)

class HTMLResponse:
    status = 200

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def json(self, content_type=None):
        return json.loads("<html>Service busy</html>")

    async def text(self):
        return "<html>Service busy</html>"

class HTMLSession:
    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def get(self, url, **kwargs):
        return HTMLResponse()

def test_fetch_json_rejects_html_body():
    with patch("safario.services.http.aiohttp.ClientSession", new=HTMLSession):
        with pytest.raises(UpstreamServiceError) as error:
            asyncio.run(fetch_json("https://nominatim.example/reverse", service="nominatim"))

    assert error.value.service == "nominatim"

def test_html_geocoder_response_falls_back(monkeypatch):
    monkeypatch.setattr(settings, "MAPBOX_TOKEN", None)
    with patch("safario.services.http.aiohttp.ClientSession", new=HTMLSession):
        result = asyncio.run(places.get_places(23.03, 72.58))

    assert result["city"] == places.FALLBACK_CITY
    assert len(result["places"]) == len(places.DEFAULT_PLACES)

def test_decode_error_from_geocoder_falls_back(monkeypatch):
    monkeypatch.setattr(settings, "MAPBOX_TOKEN", None)
    broken = AsyncMock(side_effect=json.JSONDecodeError("Expecting value", "<html>", 0))
    with patch("safario.services.maps.fetch_json", new=broken):
        result = asyncio.run(places.get_places(23.03, 72.58))

    assert result["city"] == places.FALLBACK_CITY

@pytest.mark.parametrize("payload", [[], "<html>", None, 42])
def test_reverse_geocode_rejects_non_object(monkeypatch, payload):
    monkeypatch.setattr(settings, "MAPBOX_TOKEN", None)
    with patch("safario.services.maps.fetch_json", new=AsyncMock(return_value=payload)):
        with pytest.raises(UpstreamServiceError):
            asyncio.run(maps.reverse_geocode(23.03, 72.58))

def test_reverse_geocode_ignores_malformed_fields(monkeypatch):
    monkeypatch.setattr(settings, "MAPBOX_TOKEN", None)
    with patch("safario.services.maps.fetch_json", new=AsyncMock(return_value={"address": "Ahmedabad"})):
        assert asyncio.run(maps.reverse_geocode(23.03, 72.58)) == maps.DEFAULT_AREA_NAME

    monkeypatch.setattr(settings, "MAPBOX_TOKEN", "pk.test")
    with patch("safario.services.maps.fetch_json", new=AsyncMock(return_value={"features": ["Ahmedabad"]})):
        assert asyncio.run(maps.reverse_geocode(23.03, 72.58)) == maps.DEFAULT_AREA_NAME

def test_default_places_link_on_equator_and_meridian():
    linked = places.default_places(0.0, 0.0)
    assert all("tourist+attractions/@0.0,0.0" in p["directionsUrl"] for p in linked)

    assert all(p["directionsUrl"] is None for p in places.default_places())
