"""Domain business rules and constants."""

from typing import Final

# Business Rules - Core domain constraints
INITIAL_VETO_BUDGET: Final = 1
MAX_NAME_LENGTH: Final = 100
MAX_TITLE_LENGTH: Final = 200
MAX_ARTIST_LENGTH: Final = 200
MAX_LINK_URL_LENGTH: Final = 2048

# Ids are stored as signed 64-bit SQLite integers
MAX_ID: Final = 2**63 - 1
