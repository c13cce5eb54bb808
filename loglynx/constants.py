"""Global constants for the LogLynx API."""

API_PREFIX = "/api/v1"
FIRESTORE_BATCH_LIMIT = 400

# Collection names
USERS_COLLECTION = "users"
BIKES_COLLECTION = "bikes"
COMPONENTS_COLLECTION = "components"
INSTALLATIONS_COLLECTION = "installations"
SERVICE_LOGS_COLLECTION = "service-logs"
USER_BADGES_COLLECTION = "user_badges"
NOTIFICATION_TOKENS_COLLECTION = "notification_tokens"
STRAVA_CONNECTIONS_COLLECTION = "strava-connections"
STRAVA_OAUTH_STATES_COLLECTION = "strava_oauth_states"
ACTIVITIES_COLLECTION = "activities"

# Common document fields
OWNER_UID = "ownerUid"
USER_UID = "userUid"

# Bikes
BIKE_STATUSES = ("Excellent", "Good", "Needs Attention", "Critical")
BIKE_IDENTIFIER_PREFIX = "LYNX"

# Users
DARK_MODE_OPTIONS = ("system", "light", "dark")

# Service logs
RECENT_SERVICE_LOGS_LIMIT = 5

# Badges
MS_PER_DAY = 86_400_000
DEFAULT_BADGE_STATS_TIMEOUT = 10

# Auth
FIREBASE_TOKEN_TTL_SECONDS = 3600
