import random
import time
from typing import Dict, Iterable, List

from safario.core.exceptions import InvalidTransition
from safario.core.geofencing import Zone, ZoneKind
from safario.models.report import FIRStatus, LostItemStatus

# Forward-only FIR lifecycle
FIR_TRANSITIONS: Dict[FIRStatus, List[FIRStatus]] = {
    FIRStatus.FILED: [FIRStatus.INVESTIGATING, FIRStatus.CLOSED],
    FIRStatus.INVESTIGATING: [FIRStatus.CLOSED],
    FIRStatus.CLOSED: [],
}

LOST_ITEM_TRANSITIONS: Dict[LostItemStatus, List[LostItemStatus]] = {
    LostItemStatus.LOST: [LostItemStatus.FOUND],
    LostItemStatus.FOUND: [],
}

def _number_suffix() -> str:
    return f"{int(time.time() * 1000)}{random.randint(0, 999):03d}"

def generate_fir_number() -> str:
    return f"FIR{_number_suffix()}"

def generate_lost_item_fir_number() -> str:
    return f"FIR-LOST-{_number_suffix()}"

def lost_item_fir_description(item_name: str, description: str) -> str:
    return (
        f"Lost Item Report: {item_name}\n\n"
        f"Description: {description}\n\n"
        "This FIR was automatically generated for a lost item report."
    )

def check_fir_transition(current: FIRStatus, requested: FIRStatus) -> bool:
    """
    Validate an FIR status change.
    Returns False for a same-status no-op, True for a real move, and
    raises InvalidTransition for anything backwards.
    """
    if current == requested:
        return False
    if requested not in FIR_TRANSITIONS[current]:
        raise InvalidTransition("FIR", current.value, requested.value)
    return True

def check_lost_item_transition(current: LostItemStatus, requested: LostItemStatus) -> bool:
    if current == requested:
        return False
    if requested not in LOST_ITEM_TRANSITIONS[current]:
        raise InvalidTransition("lost item", current.value, requested.value)
    return True

def compute_safety_score(
    latitude: float,
    longitude: float,
    danger_zones: Iterable[Zone],
    nearby_active_alerts: int = 0
) -> int:
    """
    Score a location from 0 (unsafe) to 100.
    Being inside a danger zone costs 30, being within twice its radius
    costs 15, and each active alert nearby costs 5 (at most 20).
    """
    score = 100
    for zone in danger_zones:
        if zone.kind != ZoneKind.DANGER:
            continue
        distance = zone.distance_to(latitude, longitude)
        if distance <= zone.radius_m:
            score -= 30
        elif distance <= zone.radius_m * 2:
            score -= 15
    score -= min(nearby_active_alerts * 5, 20)
    return max(0, min(100, score))

def get_risk_level(score: int) -> str:
    if score >= 80:
        return "Low"
    if score >= 60:
        return "Medium"
    return "High"
