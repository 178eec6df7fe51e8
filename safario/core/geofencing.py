import math
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

EARTH_RADIUS_M = 6_371_000
# Flat approximation used only to turn a radius into degree offsets for
# rendering. Error stays under 0.5% for radii of a few km away from the
# poles and grows with radius and latitude.
METERS_PER_DEGREE = 111_320
CIRCLE_VERTICES = 64

class ZoneKind(str, Enum):
    SAFE = "safe"
    DANGER = "danger"

class GeofenceEventType(str, Enum):
    LEFT_SAFE_ZONE = "left_safe_zone"
    RETURNED_TO_SAFE_ZONE = "returned_to_safe_zone"
    ENTERED_DANGER_ZONE = "entered_danger_zone"
    EXITED_DANGER_ZONE = "exited_danger_zone"

NOTIFYING_EVENTS = {
    GeofenceEventType.LEFT_SAFE_ZONE,
    GeofenceEventType.ENTERED_DANGER_ZONE,
}

def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate distance between two points using Haversine formula
    Returns distance in meters
    """
    lat1, lon1, lat2, lon2 = map(math.radians, [lat1, lon1, lat2, lon2])
    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = math.sin(dlat/2)**2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon/2)**2
    c = 2 * math.asin(math.sqrt(min(1.0, a)))

    return EARTH_RADIUS_M * c

def validate_coordinates(latitude: float, longitude: float) -> List[str]:
    errors = []
    if not (-90 <= latitude <= 90):
        errors.append("Invalid latitude: must be between -90 and 90")
    if not (-180 <= longitude <= 180):
        errors.append("Invalid longitude: must be between -180 and 180")
    return errors

@dataclass(frozen=True)
class Zone:
    name: str
    latitude: float
    longitude: float
    radius_m: float
    kind: ZoneKind = ZoneKind.DANGER

    def distance_to(self, latitude: float, longitude: float) -> float:
        return calculate_distance(self.latitude, self.longitude, latitude, longitude)

    def contains(self, latitude: float, longitude: float) -> bool:
        return self.distance_to(latitude, longitude) <= self.radius_m

    @property
    def key(self) -> str:
        return f"{self.kind.value}:{self.name}"

def circle_polygon(
    latitude: float,
    longitude: float,
    radius_m: float,
    vertices: int = CIRCLE_VERTICES
) -> List[List[float]]:
    """
    Approximate a circle as a regular polygon for map overlays.
    Returns a closed GeoJSON ring of [lng, lat] positions (first == last).
    """
    if vertices < 3:
        raise ValueError("A polygon needs at least 3 vertices")

    lat_offset = radius_m / METERS_PER_DEGREE
    lng_offset = radius_m / (METERS_PER_DEGREE * max(math.cos(math.radians(latitude)), 1e-9))

    ring = []
    for i in range(vertices):
        theta = 2 * math.pi * i / vertices
        ring.append([
            longitude + lng_offset * math.cos(theta),
            latitude + lat_offset * math.sin(theta),
        ])
    ring.append(list(ring[0]))
    return ring

def zone_feature(zone: Zone) -> Dict[str, Any]:
    return {
        "type": "Feature",
        "properties": {
            "name": zone.name,
            "kind": zone.kind.value,
            "radius_m": zone.radius_m,
        },
        "geometry": {
            "type": "Polygon",
            "coordinates": [circle_polygon(zone.latitude, zone.longitude, zone.radius_m)],
        },
    }

def route_overlay(
    points: Sequence[Tuple[float, float]],
    zones: Iterable[Zone] = ()
) -> Dict[str, Any]:
    """
    Build a route line for the map from (lat, lng) waypoints.
    Reports total length and any danger zones a waypoint falls inside.
    """
    if len(points) < 2:
        raise ValueError("A route needs at least two points")

    total = 0.0
    for (lat1, lng1), (lat2, lng2) in zip(points, points[1:]):
        total += calculate_distance(lat1, lng1, lat2, lng2)

    crossed = []
    for zone in zones:
        if zone.kind != ZoneKind.DANGER:
            continue
        if any(zone.contains(lat, lng) for lat, lng in points):
            crossed.append(zone.name)

    return {
        "type": "Feature",
        "properties": {
            "distance_m": round(total, 1),
            "danger_zones": crossed,
        },
        "geometry": {
            "type": "LineString",
            "coordinates": [[lng, lat] for lat, lng in points],
        },
    }

@dataclass
class GeofenceEvent:
    type: GeofenceEventType
    zone: str
    distance_m: float

    @property
    def notify(self) -> bool:
        return self.type in NOTIFYING_EVENTS

    @property
    def message(self) -> str:
        if self.type == GeofenceEventType.LEFT_SAFE_ZONE:
            return f"You have left your safe zone ({self.zone})"
        if self.type == GeofenceEventType.RETURNED_TO_SAFE_ZONE:
            return f"You are back inside your safe zone ({self.zone})"
        if self.type == GeofenceEventType.ENTERED_DANGER_ZONE:
            return f"Warning: you have entered a danger zone ({self.zone})"
        return f"You have left the danger zone ({self.zone})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "zone": self.zone,
            "distance_m": round(self.distance_m, 1),
            "notify": self.notify,
            "message": self.message,
        }

@dataclass
class GeofenceReport:
    latitude: float
    longitude: float
    inside_safe_zone: bool
    distance_from_start_m: float
    danger_zones: List[str] = field(default_factory=list)
    events: List[GeofenceEvent] = field(default_factory=list)

    @property
    def notifications(self) -> List[GeofenceEvent]:
        return [event for event in self.events if event.notify]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "inside_safe_zone": self.inside_safe_zone,
            "distance_from_start_m": round(self.distance_from_start_m, 1),
            "danger_zones": self.danger_zones,
            "events": [event.to_dict() for event in self.events],
        }

class GeofenceMonitor:
    """
    Tracks one user's position against a safe perimeter and danger zones.

    Events are edge-triggered: each zone remembers whether the user was
    inside it at the previous check, and an event fires only when that
    changes. The perimeter starts "inside" and danger zones start "outside".
    """

    def __init__(
        self,
        start_lat: float,
        start_lng: float,
        radius_m: float,
        danger_zones: Iterable[Zone] = (),
        name: str = "Safe perimeter"
    ):
        self.radius_m = radius_m
        self.perimeter_name = name
        self.safe_perimeter = Zone(name, start_lat, start_lng, radius_m, ZoneKind.SAFE)
        self.danger_zones: List[Zone] = []
        self._last_state: Dict[str, bool] = {}
        self.reset(start_lat, start_lng)
        self.set_danger_zones(danger_zones)

    def reset(self, start_lat: float, start_lng: float) -> None:
        """Re-center the safe perimeter and forget previous states."""
        self.safe_perimeter = Zone(
            self.perimeter_name, start_lat, start_lng, self.radius_m, ZoneKind.SAFE
        )
        self._last_state = {self.safe_perimeter.key: True}
        for zone in self.danger_zones:
            self._last_state[zone.key] = False

    def set_danger_zones(self, zones: Iterable[Zone]) -> None:
        zones = [zone for zone in zones if zone.kind == ZoneKind.DANGER]
        keep = {zone.key for zone in zones}
        for key in list(self._last_state):
            if key != self.safe_perimeter.key and key not in keep:
                del self._last_state[key]
        for zone in zones:
            self._last_state.setdefault(zone.key, False)
        self.danger_zones = zones

    def zones(self) -> List[Zone]:
        return [self.safe_perimeter, *self.danger_zones]

    def evaluate(self, latitude: float, longitude: float) -> GeofenceReport:
        errors = validate_coordinates(latitude, longitude)
        if errors:
            raise ValueError("; ".join(errors))

        events: List[GeofenceEvent] = []

        perimeter = self.safe_perimeter
        distance = perimeter.distance_to(latitude, longitude)
        inside_safe = distance <= perimeter.radius_m
        was_inside = self._last_state.get(perimeter.key, True)
        if was_inside and not inside_safe:
            events.append(GeofenceEvent(GeofenceEventType.LEFT_SAFE_ZONE, perimeter.name, distance))
        elif inside_safe and not was_inside:
            events.append(GeofenceEvent(GeofenceEventType.RETURNED_TO_SAFE_ZONE, perimeter.name, distance))
        self._last_state[perimeter.key] = inside_safe

        inside_danger = []
        for zone in self.danger_zones:
            zone_distance = zone.distance_to(latitude, longitude)
            inside = zone_distance <= zone.radius_m
            was_in_zone = self._last_state.get(zone.key, False)
            if inside and not was_in_zone:
                events.append(GeofenceEvent(GeofenceEventType.ENTERED_DANGER_ZONE, zone.name, zone_distance))
            elif was_in_zone and not inside:
                events.append(GeofenceEvent(GeofenceEventType.EXITED_DANGER_ZONE, zone.name, zone_distance))
            self._last_state[zone.key] = inside
            if inside:
                inside_danger.append(zone.name)

        for event in events:
            logger.info(f"Geofence event {event.type.value} for zone '{event.zone}'")

        return GeofenceReport(
            latitude=latitude,
            longitude=longitude,
            inside_safe_zone=inside_safe,
            distance_from_start_m=distance,
            danger_zones=inside_danger,
            events=events,
        )

    def overlay(self) -> Dict[str, Any]:
        return map_overlay(self.zones())

def map_overlay(zones: Iterable[Zone]) -> Dict[str, Any]:
    return {
        "type": "FeatureCollection",
        "features": [zone_feature(zone) for zone in zones],
    }

class GeofenceRegistry:
    """In-process monitors, one per user id."""

    def __init__(self, radius_m: float):
        self.radius_m = radius_m
        self._monitors: Dict[str, GeofenceMonitor] = {}

    def get(self, user_id: str) -> Optional[GeofenceMonitor]:
        return self._monitors.get(user_id)

    def monitor_for(
        self,
        user_id: str,
        latitude: float,
        longitude: float,
        danger_zones: Iterable[Zone] = ()
    ) -> GeofenceMonitor:
        """Return the user's monitor, starting one at this position if needed."""
        monitor = self._monitors.get(user_id)
        if monitor is None:
            monitor = GeofenceMonitor(latitude, longitude, self.radius_m, danger_zones)
            self._monitors[user_id] = monitor
        else:
            monitor.set_danger_zones(danger_zones)
        return monitor

    def restart(
        self,
        user_id: str,
        latitude: float,
        longitude: float,
        danger_zones: Iterable[Zone] = ()
    ) -> GeofenceMonitor:
        monitor = self._monitors.get(user_id)
        if monitor is None:
            return self.monitor_for(user_id, latitude, longitude, danger_zones)
        monitor.set_danger_zones(danger_zones)
        monitor.reset(latitude, longitude)
        return monitor

    def discard(self, user_id: str) -> None:
        self._monitors.pop(user_id, None)

    def __len__(self) -> int:
        return len(self._monitors)
