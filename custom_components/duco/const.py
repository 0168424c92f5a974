"""Constants for the Duco integration."""

from homeassistant.const import Platform

DOMAIN = "duco"

# Platforms
PLATFORMS = [Platform.FAN]

# Config entry keys
CONF_REFRESH_INTERVAL = "refresh_interval"
CONF_RETRY_INTERVAL = "retry_interval"

DEFAULT_REFRESH_INTERVAL = 60  # seconds between ventilation level polls
DEFAULT_RETRY_INTERVAL = 30  # seconds to wait after a failed discovery
DISCOVERY_TIMEOUT = 20  # seconds to browse for the controller
RESOLVE_TIMEOUT = 3  # seconds to resolve a discovered service
REQUEST_TIMEOUT = 10  # seconds per HTTP request

# mDNS advertisement of the Duco communication print
SERVICE_TYPE = "_http._tcp.local."
SERVICE_NAME_PREFIX = "DUCO "

MANUFACTURER = "Duco"
DEFAULT_NAME = "Duco"

STORAGE_VERSION = 1

ATTR_HOST = "host"
ATTR_NODE = "node"
ATTR_VENTILATION_LEVEL = "ventilation_level"
