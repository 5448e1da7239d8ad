"""Internal constants shared across the library."""

BASE_URL = "https://api.us.petlibro.com"

# Client identity the vendor's mobile app sends with every request.
APP_ID = 1
APP_SN = "c35772530d1041699c87fe62348507a8"
APP_SOURCE = "ANDROID"
APP_LANGUAGE = "EN"
APP_VERSION = "1.3.45"

#: Vendor codes meaning the token is no longer accepted.
SESSION_EXPIRED_CODES: frozenset[int] = frozenset({1009})

# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

LOGIN_ENDPOINT = "/member/auth/login"
REFRESH_ENDPOINT = "/member/auth/refresh"
LOGOUT_ENDPOINT = "/user/logout"

DEVICE_LIST_ENDPOINT = "/device/device/list"
REAL_INFO_ENDPOINT = "/device/device/realInfo"
GRAIN_STATUS_ENDPOINT = "/device/data/grainStatus"
FEEDING_PLAN_TODAY_ENDPOINT = "/device/device/getfeedingplantoday_new"
WET_FEEDING_PLAN_ENDPOINT = "/device/device/wetFeedingPlan"
WORK_RECORD_ENDPOINT = "/device/device/workRecord"
DEFAULT_MATRIX_ENDPOINT = "/device/device/getDefaultMatrix"

MANUAL_FEEDING_ENDPOINT = "/device/device/manualFeeding"
MANUAL_FEED_NOW_ENDPOINT = "/device/wetFeedingPlan/manualFeedNow"
STOP_FEED_NOW_ENDPOINT = "/device/wetFeedingPlan/stopFeedNow"
SET_STOP_FEED_NOW_ENDPOINT = "/device/device/setStopFeedNow"
PLATE_POSITION_CHANGE_ENDPOINT = "/device/wetFeedingPlan/platePositionChange"
FEED_AUDIO_ENDPOINT = "/device/wetFeedingPlan/feedAudio"

SETTING_ENDPOINT_PREFIX = "/device/setting/"

# ------------------------------------------------------------------
# Timing (seconds)
# ------------------------------------------------------------------

DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_FEED_TIMEOUT = 30.0

#: Token lifetime assumed when the server does not state one.  Kept
#: below the observed one hour lifetime.
DEFAULT_TOKEN_LIFETIME = 50 * 60

DEVICE_LIST_TTL = 30 * 60
REAL_INFO_TTL = 2 * 60
FEEDING_STATUS_TTL = 30
CONTROL_ACTION_TTL = 5

#: Refresh real-time info ahead of its 2 minute TTL.
DEFAULT_BACKGROUND_REFRESH_INTERVAL = 90.0

#: Pause between consecutive tray rotations so the plate finishes moving.
DEFAULT_SETTLE_DELAY = 1.0

#: Number of discrete tray positions on the rotating plate.
TRAY_POSITIONS = 3

POLAR_MODEL = "PLAF109"
