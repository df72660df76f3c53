"""Application-wide constants.

This module defines constants used throughout the application
to avoid magic numbers and ensure consistency.
"""

# String field lengths
MAX_LOGIN_LENGTH = 128
MAX_NAME_LENGTH = 100
MAX_TITLE_LENGTH = 255
MAX_SLUG_LENGTH = 63
MAX_PERMISSION_NAME_LENGTH = 150

# Password requirements
MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 128
MIN_SALT_LENGTH = 8
ARGON2_HASH_LENGTH = 32

# Pagination defaults
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# Session settings
SESSION_TOKEN_BYTES = 32
DEFAULT_SESSION_TTL_SECONDS = 3600
DEFAULT_EXPIRED_RETENTION_SECONDS = 86400
DEFAULT_CACHE_STRIPES = 16
DEFAULT_PURGE_INTERVAL_SECONDS = 300
DEFAULT_SESSION_COOKIE = "session"

# Salt requirements
DEFAULT_INSECURE_SALT = "change-me-in-production"

# Permission naming
PERMISSION_SEPARATOR = "::"
PUBLIC_CONTENT_CATEGORY = "content"
ADMINISTRATOR_ROLE = "administrator"

# Areas that receive <area>::read|write|delete permissions at bootstrap
BUILTIN_PERMISSION_AREAS = (
    "role",
    "user",
    "group",
    "permission",
    "schema",
    "content",
    "storage",
    "private_storage",
)
