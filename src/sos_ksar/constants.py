"""Shared constants and enumerations for SOS Ksar."""

from enum import Enum

ENV_DEVELOPMENT = "development"
ENV_PRODUCTION = "production"
LOCALHOST = "localhost"
DEV_SECRET_KEY_PLACEHOLDER = "dev-secret-key-change-in-production"

DEFAULT_SESSION_EXPIRE_DAYS = 7
DEFAULT_SESSION_CACHE_SECONDS = 5 * 60
DEFAULT_SESSION_COOKIE_NAME = "sos_ksar.session_token"
OAUTH_STATE_TTL_SECONDS = 10 * 60

LOGIN_PATH = "/auth"
UNAUTHORIZED_PATH = "/unauthorized"
DASHBOARD_PATH = "/dashboard"


class UserRole(str, Enum):
    CITIZEN = "citizen"
    VOLUNTEER = "volunteer"
    ADMIN = "admin"


class ReportStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"


class ReportType(str, Enum):
    MEDICAL = "medical"
    FIRE = "fire"
    ACCIDENT = "accident"
    CRIME = "crime"
    NATURAL_DISASTER = "natural_disaster"
    OTHER = "other"


class InventoryItem(str, Enum):
    FIRST_AID_KIT = "first_aid_kit"
    FIRE_EXTINGUISHER = "fire_extinguisher"
    EMERGENCY_BLANKET = "emergency_blanket"
    WATER_BOTTLES = "water_bottles"
    FOOD_RATIONS = "food_rations"
    FLASHLIGHT = "flashlight"
    RADIO = "radio"
    BATTERIES = "batteries"
    MEDICAL_SUPPLIES = "medical_supplies"
    RESCUE_EQUIPMENT = "rescue_equipment"


# Least-privileged role; used whenever a stored or resolved role is missing or unknown.
DEFAULT_ROLE = UserRole.CITIZEN.value

ROLE_VALUES = frozenset(role.value for role in UserRole)
RESPONDER_ROLES = frozenset({UserRole.VOLUNTEER.value, UserRole.ADMIN.value})
SELF_SIGNUP_ROLES = frozenset({UserRole.CITIZEN.value, UserRole.VOLUNTEER.value})
