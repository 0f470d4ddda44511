"""Infrastructure-related constants, particularly for the ANAF web services."""

from typing import Final

# Upstream endpoints
COMPANY_API_BASE_URL: Final[str] = "https://webservicesp.anaf.ro/PlatitorTvaRest/api"
COMPANY_API_VERSIONS: Final[tuple[str, ...]] = ("v8", "v7", "v6", "v5", "v4")
EFACTURA_API_URL: Final[str] = (
    "https://webservicesp.anaf.ro/api/registruroefactura/v1/interogare"
)

# The upstream firewall rejects clients that do not look like a browser
BROWSER_USER_AGENT: Final[str] = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# Application status code carried in the ``cod`` field of a successful answer
APPLICATION_CODE_OK: Final[int] = 200

# Markers of the F5 firewall rejection page
FIREWALL_REJECTION_MARKERS: Final[tuple[str, ...]] = (
    "requested URL was rejected",
    "support ID is:",
)
FIREWALL_SUPPORT_ID_PATTERN: Final[str] = r"support ID is: ([A-Za-z0-9]+)"
UNKNOWN_SUPPORT_ID: Final[str] = "unknown"
