from .http import fetch_json
from .maps import get_map_token, reverse_geocode
from .otp import normalize_phone, send_otp, verify_otp
from .places import get_places
from .weather import get_weather

__all__ = [
    "fetch_json",
    "get_map_token",
    "reverse_geocode",
    "normalize_phone",
    "send_otp",
    "verify_otp",
    "get_places",
    "get_weather",
]
