import pytest

from safario.core import access
from safario.core.access import Action, RoleState
from safario.core.exceptions import InvalidTransition
from safario.models.user import Role, RoleStatus

@pytest.mark.parametrize("role, expected", [
    (Role.USER, RoleStatus.APPROVED),
    (Role.AUTHORITY, RoleStatus.PENDING),
    (Role.ADMIN, RoleStatus.PENDING),
])
def test_initial_status(role, expected):
    assert access.initial_status(role) == expected
    assert access.create(role) == RoleState(role, expected)

def test_approve_pending_keeps_role():
    state = access.approve(RoleState(Role.AUTHORITY, RoleStatus.PENDING))
    assert state == RoleState(Role.AUTHORITY, RoleStatus.APPROVED)

def test_approve_requires_pending():
    with pytest.raises(InvalidTransition):
        access.approve(RoleState(Role.AUTHORITY, RoleStatus.APPROVED))

def test_reject_falls_back_to_user():
    for status in RoleStatus:
        state = access.reject(RoleState(Role.ADMIN, status))
        assert state == RoleState(Role.USER, RoleStatus.APPROVED)

def test_reassign_approves_new_role():
    state = access.reassign(RoleState(Role.USER, RoleStatus.APPROVED), Role.ADMIN)
    assert state == RoleState(Role.ADMIN, RoleStatus.APPROVED)

def test_pending_authority_has_only_traveller_actions():
    actions = access.permitted_actions(Role.AUTHORITY, RoleStatus.PENDING)
    assert actions == access.TRAVELLER_ACTIONS
    assert not access.can(Role.AUTHORITY, RoleStatus.PENDING, Action.VIEW_AUTHORITY_PORTAL)

def test_capabilities_nest():
    user = access.permitted_actions(Role.USER, RoleStatus.APPROVED)
    authority = access.permitted_actions(Role.AUTHORITY, RoleStatus.APPROVED)
    admin = access.permitted_actions(Role.ADMIN, RoleStatus.APPROVED)
    assert user < authority < admin
    assert access.can(Role.AUTHORITY, RoleStatus.APPROVED, Action.UPDATE_FIR_STATUS)
    assert not access.can(Role.AUTHORITY, RoleStatus.APPROVED, Action.MANAGE_ROLES)
    assert access.can(Role.ADMIN, RoleStatus.APPROVED, Action.MANAGE_DANGER_ZONES)

def test_bootstrap_admin_is_approved():
    state = access.bootstrap_admin()
    assert state == RoleState(Role.ADMIN, RoleStatus.APPROVED)
    assert access.can(state.role, state.status, Action.MANAGE_ROLES)
