"""API-related constants."""

# HTTP Headers
CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"

# Request logging
MAX_USER_AGENT_LENGTH = 200

# Client-facing messages for errors whose details stay in the logs
VALIDATION_FAILED_MESSAGE = "Validation Failed"
SERVICE_UNAVAILABLE_MESSAGE = "Service Unavailable"
INTERNAL_ERROR_MESSAGE = "Internal Server Error"
