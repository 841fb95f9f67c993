"""Shared constants for the directory core."""

from __future__ import annotations

CATEGORIES = {
    "daily-living": "Daily Living Support",
    "therapy": "Therapy Services",
    "physiotherapy": "Physiotherapy",
    "community": "Community Participation",
    "transport": "Transport",
    "plan-management": "Plan Management",
    "support-coordination": "Support Coordination",
    "accommodation": "Supported Accommodation",
    "employment": "Employment Support",
    "assistive-tech": "Assistive Technology",
    "behaviour": "Behaviour Support",
    "nursing": "Nursing Care",
    "early-intervention": "Early Intervention",
    "respite": "Respite Care",
    "meal-prep": "Meal Preparation",
}

PLAN_TYPES = ("Agency", "Plan Managed", "Self Managed")
DEFAULT_PLAN_TYPE = "Plan Managed"

TIERS = ("free", "pro", "premium")
TIER_WEIGHTS = {"premium": 100, "pro": 50, "free": 0}

# Upper bound in days for each wait-time filter bucket.
WAIT_TIME_BUCKETS = {
    "immediate": 0,
    "1-week": 7,
    "2-weeks": 14,
    "1-month": 30,
}
IMMEDIATE_WAIT_TIME = "Immediate"

ROLES = ("participant", "provider", "admin")
ENQUIRY_STATUSES = ("active", "closed")
BOOKING_STATUSES = ("pending", "confirmed", "cancelled")
MESSAGE_SENDERS = ("participant", "provider")

LANDING_ROUTE = "landing"
PROVIDER_PROFILE_ROUTE = "provider-profile"
DASHBOARD_ROUTES = {
    "admin": "admin-dashboard",
    "provider": "provider-dashboard",
    "participant": "participant-dashboard",
}
DEFAULT_DASHBOARD_TAB = "overview"

THEMES = ("dark", "light")
DEFAULT_THEME = "dark"

ENQUIRY_ID_PREFIX = "e"
BOOKING_ID_PREFIX = "b"
REVIEW_ID_PREFIX = "r"
PROVIDER_ID_PREFIX = "p"
PARTICIPANT_ID_PREFIX = "u"

MIN_PASSWORD_LENGTH = 6
