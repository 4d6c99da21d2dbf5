"""API-related constants."""

# HTTP Headers
CORRELATION_ID_HEADER = "X-Correlation-ID"

# Request handling
REQUEST_BODY_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

# Content types
JSON_CONTENT_TYPES = frozenset({"application/json", "text/json"})

# Request state keys set by the boundary handler
ERROR_RECORD_STATE = "error_record"
ERROR_EXCEPTION_STATE = "error_exception"

# Request logging events
EVENT_INCOMING = "incoming"
EVENT_COMPLETED = "completed"
EVENT_FAILED = "failed"
