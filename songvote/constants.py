"""Infrastructure and technical constants."""

from typing import Final

# Technical configuration constants
DEFAULT_PORT: Final = 5050
DEFAULT_DB_PATH: Final = "./db/songvote.db"
MEMORY_DB_PATH: Final = ":memory:"

# Sessions
SESSION_COOKIE_NAME: Final = "session"
DEFAULT_SESSION_LIFETIME_HOURS: Final = 24
DEFAULT_SESSION_SWEEP_INTERVAL_SECONDS: Final = 300

# Password hashing
DEFAULT_BCRYPT_ROUNDS: Final = 12
