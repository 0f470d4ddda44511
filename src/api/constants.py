"""API-related constants."""

# Route prefix older frontends call; routes are served with and without it
LEGACY_API_PREFIX = "/api"

# Liveness probe payload
LIVENESS_MESSAGE = "Server is running"

# Error labels for failures raised by the API layer itself
MALFORMED_REQUEST_ERROR = "Cerere invalidă"
MALFORMED_REQUEST_DETAILS = "Corpul cererii trebuie să fie un obiect JSON cu câmpul cui"
INTERNAL_ERROR = "Eroare internă"
INTERNAL_ERROR_DETAILS = "A apărut o eroare neașteptată. Vă rugăm încercați mai târziu."
