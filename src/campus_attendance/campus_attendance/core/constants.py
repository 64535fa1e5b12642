"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

EARTH_RADIUS_METERS = 6_371_000.0

DEFAULT_EXPIRY_MINUTES = 10
MAX_EXPIRY_MINUTES = 240

DEFAULT_RADIUS_METERS = 50
MIN_RADIUS_METERS = 10
MAX_RADIUS_METERS = 500

CODE_BYTES = 16
TOKEN_BYTES = 32
MAX_CODE_ATTEMPTS = 5

UPSERT_RETRY_LIMIT = 3

DEFAULT_HISTORY_LIMIT = 30
