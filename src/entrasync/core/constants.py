"""Directory service constants used across the codebase."""

__all__ = [
    "ALLOWED_OPERATING_SYSTEMS",
    "ALLOWED_TRUST_TYPES",
    "DEFAULT_REFRESH_LIMIT",
    "GRAPH_BASE_URL",
    "GRAPH_SCOPE",
    "MAX_BATCH_SIZE",
    "PAGE_SIZE",
    "SECURITY_API_SCOPE",
]

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"

# Token audiences
GRAPH_SCOPE = "https://graph.microsoft.com/.default"
SECURITY_API_SCOPE = "https://api.securitycenter.microsoft.com/.default"

# Graph rejects more than 20 member references in a single PATCH
MAX_BATCH_SIZE = 20

# Total token refreshes allowed across a whole run
DEFAULT_REFRESH_LIMIT = 24

# Page size for member listings
PAGE_SIZE = 999

ALLOWED_OPERATING_SYSTEMS: tuple[str, ...] = ("Windows", "MacOS", "IPhone", "IPad", "Android")

ALLOWED_TRUST_TYPES: tuple[str, ...] = ("AzureAd", "ServerAd", "Workplace")
