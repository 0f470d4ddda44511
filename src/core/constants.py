"""Core application constants."""

# Time constants
MILLISECONDS_PER_SECOND = 1000

# Security and redaction
REDACTED = "[REDACTED]"

# Request tracking headers
CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"

# Input validation labels, part of the public error contract
CUI_REQUIRED_ERROR = "CUI is required"
CUI_REQUIRED_DETAILS = "Câmpul cui lipsește din cerere"
CUI_INVALID_ERROR = "CUI invalid"
CUI_INVALID_DETAILS = "Numărul CUI introdus nu este valid"
