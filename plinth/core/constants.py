"""Core application constants."""

# Time constants
MILLISECONDS_PER_SECOND = 1000

# Masking
MASKED = "***MASKED***"
DEFAULT_SENSITIVE_FIELDS = (
    "password",
    "refreshToken",
    "accessToken",
    "apiKey",
    "secret",
    "token",
)

# Request logging
DEFAULT_EXCLUDED_PATHS = ("/api/v1/health", "/health")
MAX_LOGGED_BODY_LENGTH = 2048

# Error records
UNKNOWN_STATUS_CODE = "UNKNOWN"
UNEXPECTED_ERROR_DETAIL = "An unexpected error occurred"
