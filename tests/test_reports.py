import re

import pytest

from safario.core.exceptions import InvalidTransition
from safario.core.geofencing import Zone, ZoneKind
from safario.core.reports import (
    check_fir_transition,
    check_lost_item_transition,
    compute_safety_score,
    generate_fir_number,
    generate_lost_item_fir_number,
    get_risk_level,
    lost_item_fir_description,
)
from safario.models.report import FIRStatus, LostItemStatus

def test_fir_number_formats():
    assert re.fullmatch(r"FIR\d+", generate_fir_number())
    assert re.fullmatch(r"FIR-LOST-\d+", generate_lost_item_fir_number())

@pytest.mark.parametrize("current, requested", [
    (FIRStatus.FILED, FIRStatus.INVESTIGATING),
    (FIRStatus.FILED, FIRStatus.CLOSED),
    (FIRStatus.INVESTIGATING, FIRStatus.CLOSED),
])
def test_forward_fir_moves(current, requested):
    assert check_fir_transition(current, requested) is True

@pytest.mark.parametrize("current, requested", [
    (FIRStatus.INVESTIGATING, FIRStatus.FILED),
    (FIRStatus.CLOSED, FIRStatus.FILED),
    (FIRStatus.CLOSED, FIRStatus.INVESTIGATING),
])
def test_backward_fir_moves_rejected(current, requested):
    with pytest.raises(InvalidTransition):
        check_fir_transition(current, requested)

def test_same_status_is_noop():
    assert check_fir_transition(FIRStatus.CLOSED, FIRStatus.CLOSED) is False
    assert check_lost_item_transition(LostItemStatus.FOUND, LostItemStatus.FOUND) is False

def test_lost_item_only_moves_to_found():
    assert check_lost_item_transition(LostItemStatus.LOST, LostItemStatus.FOUND) is True
    with pytest.raises(InvalidTransition):
        check_lost_item_transition(LostItemStatus.FOUND, LostItemStatus.LOST)

def test_lost_item_fir_description_mentions_item():
    text = lost_item_fir_description("Passport", "Blue cover")
    assert "Passport" in text
    assert "Blue cover" in text

def test_safety_score():
    zone = Zone("Riverbank", 0.0, 0.0, 500, ZoneKind.DANGER)
    assert compute_safety_score(10.0, 10.0, [zone]) == 100
    assert compute_safety_score(0.0, 0.0, [zone]) == 70
    assert compute_safety_score(0.0, 0.007, [zone]) == 85
    assert compute_safety_score(10.0, 10.0, [], nearby_active_alerts=10) == 80
    assert compute_safety_score(0.0, 0.0, [zone] * 4, nearby_active_alerts=10) == 0

def test_safe_zones_do_not_lower_score():
    zone = Zone("Home", 0.0, 0.0, 500, ZoneKind.SAFE)
    assert compute_safety_score(0.0, 0.0, [zone]) == 100

@pytest.mark.parametrize("score, level", [(100, "Low"), (80, "Low"), (79, "Medium"), (60, "Medium"), (59, "High")])
def test_risk_level(score, level):
    assert get_risk_level(score) == level
