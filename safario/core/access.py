"""
Role approval workflow and the capability check used by every protected
endpoint.

Role rows move through three states:

    create    user                -> approved
              authority | admin   -> pending
    approve   pending             -> approved (role unchanged)
    reject    any                 -> role=user, approved
    reassign  any                 -> chosen role, approved
    bootstrap configured email    -> admin, approved

``rejected`` exists in the schema but is never written by this module.
"""

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet

from safario.core.exceptions import InvalidTransition
from safario.models.user import Role, RoleStatus

class Action(str, Enum):
    # Traveller
    MANAGE_OWN_PROFILE = "manage_own_profile"
    SEND_EMERGENCY_ALERT = "send_emergency_alert"
    MANAGE_EMERGENCY_CONTACTS = "manage_emergency_contacts"
    FILE_FIR = "file_fir"
    REPORT_LOST_ITEM = "report_lost_item"
    USE_MAP = "use_map"

    # Authority portal
    VIEW_AUTHORITY_PORTAL = "view_authority_portal"
    RESPOND_TO_ALERTS = "respond_to_alerts"
    UPDATE_FIR_STATUS = "update_fir_status"
    UPDATE_LOST_ITEM_STATUS = "update_lost_item_status"

    # Admin panel
    VIEW_ADMIN_PANEL = "view_admin_panel"
    MANAGE_ROLES = "manage_roles"
    MANAGE_DANGER_ZONES = "manage_danger_zones"

TRAVELLER_ACTIONS: FrozenSet[Action] = frozenset({
    Action.MANAGE_OWN_PROFILE,
    Action.SEND_EMERGENCY_ALERT,
    Action.MANAGE_EMERGENCY_CONTACTS,
    Action.FILE_FIR,
    Action.REPORT_LOST_ITEM,
    Action.USE_MAP,
})

AUTHORITY_ACTIONS: FrozenSet[Action] = TRAVELLER_ACTIONS | {
    Action.VIEW_AUTHORITY_PORTAL,
    Action.RESPOND_TO_ALERTS,
    Action.UPDATE_FIR_STATUS,
    Action.UPDATE_LOST_ITEM_STATUS,
}

ADMIN_ACTIONS: FrozenSet[Action] = AUTHORITY_ACTIONS | {
    Action.VIEW_ADMIN_PANEL,
    Action.MANAGE_ROLES,
    Action.MANAGE_DANGER_ZONES,
}

@dataclass(frozen=True)
class RoleState:
    role: Role
    status: RoleStatus

def initial_status(role: Role) -> RoleStatus:
    return RoleStatus.APPROVED if role == Role.USER else RoleStatus.PENDING

def create(role: Role) -> RoleState:
    return RoleState(role, initial_status(role))

def bootstrap_admin() -> RoleState:
    return RoleState(Role.ADMIN, RoleStatus.APPROVED)

def approve(current: RoleState) -> RoleState:
    if current.status != RoleStatus.PENDING:
        raise InvalidTransition("role request", current.status.value, RoleStatus.APPROVED.value)
    return RoleState(current.role, RoleStatus.APPROVED)

def reject(current: RoleState) -> RoleState:
    # A rejected request falls back to a regular account
    return RoleState(Role.USER, RoleStatus.APPROVED)

def reassign(current: RoleState, new_role: Role) -> RoleState:
    return RoleState(new_role, RoleStatus.APPROVED)

def permitted_actions(role: Role, status: RoleStatus) -> FrozenSet[Action]:
    if status != RoleStatus.APPROVED:
        return TRAVELLER_ACTIONS
    if role == Role.ADMIN:
        return ADMIN_ACTIONS
    if role == Role.AUTHORITY:
        return AUTHORITY_ACTIONS
    return TRAVELLER_ACTIONS

def can(role: Role, status: RoleStatus, action: Action) -> bool:
    return action in permitted_actions(role, status)
