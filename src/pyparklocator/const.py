"""Library-wide defaults."""

from datetime import timedelta

SESSIONS_TABLE = "parking_sessions"
LOCATIONS_TABLE = "saved_locations"
RATE_TIERS_TABLE = "pricing_tiers"
VEHICLES_TABLE = "vehicles"
SPOTS_TABLE = "parking_spots"
SECTIONS_TABLE = "parking_sections"
LOTS_TABLE = "parking_lots"

DEFAULT_API_URI = "rest/v1"

SESSION_TOKEN_PREFIX = "PARK"
SESSION_TOKEN_SUFFIX_LENGTH = 6

EARTH_RADIUS_METERS = 6_371_000
WALKING_SPEED_METERS_PER_MINUTE = 80

OFFLINE_CACHE_CAPACITY = 5
OFFLINE_CACHE_VERSION = 1
OFFLINE_CACHE_SCHEMA_FILENAME = "offline_cache.schema.json"

POSITION_TIMEOUT = timedelta(seconds=10)
POSITION_MAXIMUM_AGE = timedelta(seconds=60)
WATCH_MAXIMUM_AGE = timedelta(seconds=5)

DIRECTIONS_URL = "https://www.google.com/maps/dir/"
