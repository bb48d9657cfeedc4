"""
Constants used by the OilFox integration.

This file contains configuration keys, API defaults, scheduling defaults and
platform declarations so they are defined in one place.

Home Assistant imports this module frequently, so it MUST remain lightweight
(no network I/O, no heavy logic).
"""

# -----------------------------------------------------------------------------
# Basic integration identifiers
# -----------------------------------------------------------------------------

DOMAIN = "oilfox"

INTEGRATION_NAME = "OilFox"

VERSION = "0.1.0"

USER_AGENT = f"ha-oilfox/{VERSION}"


# -----------------------------------------------------------------------------
# Config entry keys (stored in entry.data or entry.options)
# -----------------------------------------------------------------------------

CONF_EMAIL = "email"
CONF_PASSWORD = "password"

# Which flavour of the cloud API to talk to ("v2" or "v3")
CONF_API_VERSION = "api_version"

# Poll interval in milliseconds (timer mode)
CONF_POLL_INTERVAL = "poll_interval"

# Cron expression; when set, replaces the timer
CONF_SCHEDULE = "schedule"

# How devices are assigned to slot indices ("id" or "position")
CONF_DEVICE_MAPPING = "device_mapping"


# -----------------------------------------------------------------------------
# Allowed values
# -----------------------------------------------------------------------------

API_V2 = "v2"
API_V3 = "v3"

DEVICE_MAPPING_ID = "id"
DEVICE_MAPPING_POSITION = "position"


# -----------------------------------------------------------------------------
# Default values
# -----------------------------------------------------------------------------

DEFAULT_HOST = "https://api.oilfox.io"

DEFAULT_API_VERSION = API_V3

DEFAULT_DEVICE_MAPPING = DEVICE_MAPPING_ID

# HTTP timeout for each of the two requests of a poll cycle
DEFAULT_TIMEOUT = 5  # seconds

DEFAULT_POLL_INTERVAL = 60000  # milliseconds

# Shipped schedule; installations still using it get a random minute instead
DEFAULT_SCHEDULE = "0 * * * *"

# A cycle that has not finished after this long is cancelled
WATCHDOG_TIMEOUT = 45  # seconds


# -----------------------------------------------------------------------------
# Persistence
# -----------------------------------------------------------------------------

STORAGE_VERSION = 1

# Delay before flushing slot changes to .storage
STORAGE_SAVE_DELAY = 10  # seconds


# -----------------------------------------------------------------------------
# Platform support
# -----------------------------------------------------------------------------

PLATFORMS = ("sensor",)
