"""Application-wide constants.

This module defines constants used throughout the application
to avoid magic numbers and ensure consistency.
"""

# Audit trail
REDACTION_TOKEN = "****"
ANONYMOUS_ACTOR = "Anonymous"
SENSITIVE_INFO_KEY = "sensitive"

# String field lengths
MAX_ENTITY_NAME_LENGTH = 100
MAX_ACTION_LENGTH = 20
MAX_ACTOR_LENGTH = 255
MAX_TITLE_LENGTH = 255
MAX_NAME_LENGTH = 255
MAX_ISBN_LENGTH = 20
MAX_VIN_LENGTH = 17

# Pagination defaults
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
