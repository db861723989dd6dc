"""Configuration constants for relaycmd."""

# Authentication settings
KEY_ENV_VAR = "RELAYCMD_KEY"  # Environment fallback for --key
DIGEST_SIZE = 32  # Bytes in derived keys and signatures

# Relay server settings
RELAY_SERVER_HOST = "0.0.0.0"  # Listen address for relay server
RELAY_SERVER_PORT = 1992  # HTTP port
RELAY_ACCEPT_TTL = 0.2  # Max age in seconds of pushed commands and logs
RELAY_MAX_MESSAGE_SIZE = 1024 * 1024  # Maximum request body (1MB)

# Client settings
HTTP_TIMEOUT = 10.0  # Seconds per HTTP request
DEFAULT_POLL_INTERVAL = 10.0  # Seconds between agent fetches

# Execution settings
COMMAND_TIMEOUT = 300  # Max seconds a fetched command may run

# Logging settings
LOG_FILE = "~/.relaycmd/relaycmd.log"  # Log file location
LOG_FORMAT = "%(asctime)s.%(msecs)03d | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"

# Operating modes
MODES = ("send", "serve", "obey")
