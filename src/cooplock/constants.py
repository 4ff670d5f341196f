"""Constants for cooplock."""

PATH_DELIMITER = "/"

# Lock file location inside every namespace
LOCK_DIRECTORY = "_lock/"
LOCK_FILE = "all.lock"
LOCK_PATH = LOCK_DIRECTORY + LOCK_FILE

# Metadata entry of the lock file holding the serialized record set
LOCK_METADATA_KEY = "lock"

# Version of the serialized record set; readers reject anything else
FORMAT_VERSION = 3

# Locking defaults (milliseconds)
DEFAULT_LOCK_EXPIRATION_TIMEOUT_MS = 120_000
DEFAULT_MAX_CONCURRENT_OPERATIONS = 20
RETRY_LOCK_INTERVAL_MS = 2_000

# Backoff defaults for optimistic-write races and transient store errors
MIN_BACK_OFF_INTERVAL_MS = 500
MAX_BACK_OFF_INTERVAL_MS = 2_000
BACK_OFF_MULTIPLIER = 1.2
BACK_OFF_RANDOMIZATION_FACTOR = 0.5

# Contention and transient-error messages are logged at most this often (seconds)
LOG_THROTTLE_SECONDS = 5.0

CONFIG_FILE = "cooplock.toml"
DEFAULT_STORE_ROOT = ".cooplock/store"
