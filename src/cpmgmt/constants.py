"""Configuration constants for the Check Point management client."""

# -----------------------------------------------------------------------------
# Pagination Limits
# -----------------------------------------------------------------------------

# Default number of objects requested per "show-*" page
DEFAULT_PAGE_LIMIT: int = 50

# Largest limit the management server accepts
MAX_PAGE_LIMIT: int = 500

# Upper bound on pages fetched by one eager pagination loop
MAX_PAGES: int = 10000

# Array fields that carry the items of a paged response, in lookup order
PAGED_ITEM_FIELDS: tuple[str, ...] = (
    "objects",
    "rulebase",
    "members",
    "hosts",
    "networks",
    "groups",
    "tags",
    "access-layers",
    "packages",
)

# -----------------------------------------------------------------------------
# Transport
# -----------------------------------------------------------------------------

# Session id header sent after login
SESSION_ID_HEADER: str = "X-chkp-sid"

MANAGEMENT_API_PATH: str = "web_api"
IDENTITY_AWARENESS_API_PATH: str = "_IA_API/v1.0"

# -----------------------------------------------------------------------------
# Identity Awareness
# -----------------------------------------------------------------------------

DEFAULT_MAX_BATCH_SIZE: int = 20

# Seconds an identity added through the API stays valid (12 hours)
DEFAULT_IDENTITY_TIMEOUT: int = 43200

# -----------------------------------------------------------------------------
# Well-known objects
# -----------------------------------------------------------------------------

ANY_UID: str = "97aeb369-9aea-11d5-bd16-0090272ccb30"
ALL_GW_TO_GW_UID: str = "97aeb36a-9aed-11d5-bd16-0090272ccb30"
POLICY_TARGETS_UID: str = "6c488338-8eec-4103-ad21-cd461ac2c476"

DEFAULT_DOMAIN_UID: str = "41e821a0-3720-11e3-aa6e-0800200c9fde"
DATA_DOMAIN_UID: str = "a0bbbc99-adef-4ef8-bb6d-defdefdefdef"
