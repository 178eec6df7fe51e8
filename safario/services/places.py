import logging
from typing import Any, Dict, List, Optional

from safario.core.exceptions import UpstreamServiceError
from safario.core.geofencing import calculate_distance
from safario.services.maps import reverse_geocode

logger = logging.getLogger(__name__)

MAX_PLACES = 4
FALLBACK_CITY = "Popular Destinations"

def _place(name: str, description: str, image: str, category: str, lat: float, lng: float) -> Dict[str, Any]:
    return {
        "name": name,
        "description": description,
        "imageUrl": f"https://images.unsplash.com/{image}",
        "category": category,
        "coordinates": {"lat": lat, "lng": lng},
    }

# Curated places for Indian cities
CITY_PLACES: Dict[str, Dict[str, Any]] = {
    "ahmedabad": {
        "city": "Ahmedabad",
        "places": [
            _place("Science City", "Interactive science museum with IMAX theater", "photo-1507003211169-0a1dd7228f2d", "Museum", 23.0707, 72.5140),
            _place("Parimal Garden", "Beautiful urban garden for relaxation", "photo-1519331379826-f10be5486c6f", "Park", 23.0225, 72.5565),
            _place("Sabarmati Ashram", "Historic ashram of Mahatma Gandhi", "photo-1564804955013-e02ad9516e6a", "Historic Site", 23.0607, 72.5802),
            _place("Kankaria Lake", "Lakefront entertainment zone", "photo-1507003211169-0a1dd7228f2d", "Lake", 23.0067, 72.6006),
            _place("Adalaj Stepwell", "Ancient intricately carved stepwell", "photo-1595658658481-d53d3f999875", "Monument", 23.1667, 72.5833),
            _place("Law Garden Night Market", "Famous street food and shopping market", "photo-1555400038-63f5ba517a47", "Market", 23.0263, 72.5601),
        ],
    },
    "indore": {
        "city": "Indore",
        "places": [
            _place("Rajwada Palace", "Historic palace of Holkar dynasty", "photo-1566552881560-0be862a7c445", "Palace", 22.7196, 75.8577),
            _place("Sarafa Bazaar", "Famous night food street", "photo-1555400038-63f5ba517a47", "Food Street", 22.7180, 75.8569),
            _place("Lal Bagh Palace", "Grand European-style palace", "photo-1566552881560-0be862a7c445", "Palace", 22.7125, 75.8472),
            _place("Patalpani Waterfall", "Scenic waterfall near Indore", "photo-1507003211169-0a1dd7228f2d", "Waterfall", 22.5747, 75.7775),
            _place("Khajrana Ganesh Temple", "Famous Ganesh temple", "photo-1564804955013-e02ad9516e6a", "Temple", 22.7424, 75.9135),
            _place("Central Museum", "Historical artifacts and sculptures", "photo-1565060169194-19fabf63012c", "Museum", 22.7243, 75.8839),
        ],
    },
    "mumbai": {
        "city": "Mumbai",
        "places": [
            _place("Gateway of India", "Iconic arch monument overlooking the sea", "photo-1570168007204-dfb528c6958f", "Monument", 18.9220, 72.8347),
            _place("Marine Drive", "Famous promenade along the coast", "photo-1587474260584-136574528ed5", "Promenade", 18.9432, 72.8235),
            _place("Elephanta Caves", "Ancient rock-cut cave temples", "photo-1595658658481-d53d3f999875", "Historic Site", 18.9633, 72.9315),
            _place("Juhu Beach", "Popular beach with street food", "photo-1507525428034-b723cf961d3e", "Beach", 19.0883, 72.8263),
        ],
    },
    "delhi": {
        "city": "Delhi",
        "places": [
            _place("India Gate", "War memorial and iconic landmark", "photo-1587474260584-136574528ed5", "Monument", 28.6129, 77.2295),
            _place("Red Fort", "Historic Mughal fortress", "photo-1566552881560-0be862a7c445", "Fort", 28.6562, 77.2410),
            _place("Qutub Minar", "UNESCO World Heritage Site", "photo-1564804955013-e02ad9516e6a", "Monument", 28.5245, 77.1855),
            _place("Lotus Temple", "Bahá'í House of Worship", "photo-1564804955013-e02ad9516e6a", "Temple", 28.5535, 77.2588),
        ],
    },
    "bangalore": {
        "city": "Bangalore",
        "places": [
            _place("Lalbagh Botanical Garden", "Historic garden with diverse flora", "photo-1519331379826-f10be5486c6f", "Garden", 12.9507, 77.5848),
            _place("Cubbon Park", "Large urban park in the city center", "photo-1562979314-bee7453e911c", "Park", 12.9763, 77.5929),
            _place("Bangalore Palace", "Tudor-style architectural marvel", "photo-1566552881560-0be862a7c445", "Palace", 12.9987, 77.5921),
            _place("ISKCON Temple", "Beautiful Krishna temple", "photo-1564804955013-e02ad9516e6a", "Temple", 13.0106, 77.5514),
        ],
    },
    "jaipur": {
        "city": "Jaipur",
        "places": [
            _place("Hawa Mahal", "Palace of Winds with unique facade", "photo-1564804955013-e02ad9516e6a", "Palace", 26.9239, 75.8267),
            _place("Amber Fort", "Majestic hilltop fort", "photo-1566552881560-0be862a7c445", "Fort", 26.9855, 75.8513),
            _place("City Palace", "Royal palace complex", "photo-1566552881560-0be862a7c445", "Palace", 26.9258, 75.8237),
            _place("Jantar Mantar", "Historic astronomical observation site", "photo-1564804955013-e02ad9516e6a", "Monument", 26.9248, 75.8246),
        ],
    },
    "gujarat": {
        "city": "Gujarat",
        "places": [
            _place("Science City", "Interactive science museum with IMAX theater", "photo-1507003211169-0a1dd7228f2d", "Museum", 23.0707, 72.5140),
            _place("Parimal Garden", "Beautiful urban garden for relaxation", "photo-1519331379826-f10be5486c6f", "Park", 23.0225, 72.5565),
            _place("Sabarmati Ashram", "Historic ashram of Mahatma Gandhi", "photo-1564804955013-e02ad9516e6a", "Historic Site", 23.0607, 72.5802),
            _place("Kankaria Lake", "Lakefront entertainment zone", "photo-1507003211169-0a1dd7228f2d", "Lake", 23.0067, 72.6006),
        ],
    },
}

# Alternate spellings seen in geocoder output
CITY_ALIASES: Dict[str, str] = {
    "bengaluru": "bangalore",
    "bombay": "mumbai",
    "newdelhi": "delhi",
    "amdavad": "ahmedabad",
}

DEFAULT_PLACES: List[Dict[str, Any]] = [
    {"name": "Nearest Tourist Spot", "description": "Explore your surroundings", "imageUrl": "https://images.unsplash.com/photo-1469854523086-cc02fe5d8800", "category": "Attraction"},
    {"name": "Local Heritage Site", "description": "Discover local history", "imageUrl": "https://images.unsplash.com/photo-1564804955013-e02ad9516e6a", "category": "Historic"},
    {"name": "City Park", "description": "Relax in nature", "imageUrl": "https://images.unsplash.com/photo-1519331379826-f10be5486c6f", "category": "Park"},
    {"name": "Local Market", "description": "Experience local culture", "imageUrl": "https://images.unsplash.com/photo-1555400038-63f5ba517a47", "category": "Market"},
]

def match_city(city_name: str) -> Optional[str]:
    """
    Case-insensitive substring match of a geocoded name against the curated
    table. Returns the table key or None.
    """
    lowered = city_name.lower().strip()
    compact = "".join(lowered.split())
    if not compact:
        return None

    for alias, key in CITY_ALIASES.items():
        if alias in compact:
            return key

    for key in CITY_PLACES:
        if key in lowered or compact in key:
            return key
    return None

def format_distance(distance_m: float) -> str:
    if distance_m < 1000:
        return f"{round(distance_m)}m"
    return f"{distance_m / 1000:.1f}km"

def directions_url(origin_lat: float, origin_lng: float, dest_lat: float, dest_lng: float) -> str:
    return (
        "https://www.google.com/maps/dir/?api=1"
        f"&origin={origin_lat},{origin_lng}"
        f"&destination={dest_lat},{dest_lng}&travelmode=driving"
    )

def default_places(latitude: Optional[float] = None, longitude: Optional[float] = None) -> List[Dict[str, Any]]:
    has_location = latitude is not None and longitude is not None
    places = []
    for place in DEFAULT_PLACES:
        entry = dict(place)
        entry["directionsUrl"] = (
            f"https://www.google.com/maps/search/tourist+attractions/@{latitude},{longitude},14z"
            if has_location else None
        )
        places.append(entry)
    return places

def places_for_city(city_key: str, latitude: float, longitude: float) -> List[Dict[str, Any]]:
    """Nearest curated places first, at most MAX_PLACES"""
    places = []
    for place in CITY_PLACES[city_key]["places"]:
        coords = place["coordinates"]
        distance_m = calculate_distance(latitude, longitude, coords["lat"], coords["lng"])
        places.append({
            **place,
            "distance_m": round(distance_m, 1),
            "distance": format_distance(distance_m),
            "directionsUrl": directions_url(latitude, longitude, coords["lat"], coords["lng"]),
        })

    places.sort(key=lambda p: p["distance_m"])
    return places[:MAX_PLACES]

def lookup_places(city_name: str, latitude: float, longitude: float) -> Dict[str, Any]:
    city_key = match_city(city_name)
    if city_key is None:
        return {"city": city_name, "places": default_places(latitude, longitude)}
    return {
        "city": CITY_PLACES[city_key]["city"],
        "places": places_for_city(city_key, latitude, longitude),
    }

async def get_places(latitude: float, longitude: float) -> Dict[str, Any]:
    """
    Places near a position. Failures fall back to the generic list rather
    than surfacing an error.
    """
    try:
        city_name = await reverse_geocode(latitude, longitude)
    except (UpstreamServiceError, ValueError) as e:
        logger.error(f"Places lookup failed: {e}")
        return {"city": FALLBACK_CITY, "places": default_places()}

    logger.info(f"Detected location: {city_name}")
    result = lookup_places(city_name, latitude, longitude)
    logger.info(f"Returning {len(result['places'])} places for {result['city']}")
    return result
