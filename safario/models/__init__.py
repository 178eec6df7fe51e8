from .user import UserAccount, UserRole, Role, RoleStatus
from .profile import Profile
from .emergency import EmergencyAlert, EmergencyContact, AlertStatus
from .report import FIRReport, LostItem, FIRStatus, LostItemStatus, IncidentType
from .zone import DangerZone
from .otp import OTPCode

__all__ = [
    "UserAccount",
    "UserRole",
    "Role",
    "RoleStatus",
    "Profile",
    "EmergencyAlert",
    "EmergencyContact",
    "AlertStatus",
    "FIRReport",
    "LostItem",
    "FIRStatus",
    "LostItemStatus",
    "IncidentType",
    "DangerZone",
    "OTPCode",
]
