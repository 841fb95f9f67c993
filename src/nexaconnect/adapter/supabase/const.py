"""Constants for the Supabase adapter."""

REST_PATH = "/rest/v1"
AUTH_PATH = "/auth/v1"
FUNCTIONS_PATH = "/functions/v1"

TOKEN_ENDPOINT = f"{AUTH_PATH}/token"
SIGNUP_ENDPOINT = f"{AUTH_PATH}/signup"
LOGOUT_ENDPOINT = f"{AUTH_PATH}/logout"

PROVIDERS_TABLE = "providers"
PARTICIPANTS_TABLE = "participants"
REVIEWS_TABLE = "reviews"
ENQUIRIES_TABLE = "enquiries"
BOOKINGS_TABLE = "bookings"
USER_PROFILES_TABLE = "user_profiles"

NEWEST_FIRST = "created_at.desc"

PREFER_HEADER = "Prefer"
RETURN_REPRESENTATION = "return=representation"
RETURN_MINIMAL = "return=minimal"
API_KEY_HEADER = "apikey"

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "User-Agent": "nexaconnect",
}

# Columns the backend assigns on insert.
SERVER_ASSIGNED_COLUMNS = ("id", "created_at")
BOOKING_UPDATE_COLUMNS = ("status", "notes", "date", "time")
