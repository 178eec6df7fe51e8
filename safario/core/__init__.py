"""
Core modules for Safario

- geofencing: safe perimeter and danger zone evaluation, map overlays
- access: role approval workflow and capability checks
- reports: FIR and lost item workflows, safety score
- emergency_alert: SOS fan-out to emergency contacts
"""

from .exceptions import SafarioError, InvalidTransition, InvalidPhoneNumber, UpstreamServiceError
from .geofencing import (
    calculate_distance,
    circle_polygon,
    GeofenceMonitor,
    GeofenceRegistry,
    Zone,
    ZoneKind,
)
from .access import Action, can, permitted_actions
from .reports import compute_safety_score, get_risk_level
from .emergency_alert import emergency_service, send_emergency_notifications

__all__ = [
    "SafarioError",
    "InvalidTransition",
    "InvalidPhoneNumber",
    "UpstreamServiceError",
    "calculate_distance",
    "circle_polygon",
    "GeofenceMonitor",
    "GeofenceRegistry",
    "Zone",
    "ZoneKind",
    "Action",
    "can",
    "permitted_actions",
    "compute_safety_score",
    "get_risk_level",
    "emergency_service",
    "send_emergency_notifications",
]
