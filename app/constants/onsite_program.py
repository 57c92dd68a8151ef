"""Labels and attribute keys of the monitored L2 onsite support program."""

from enum import StrEnum


class AttributeKey(StrEnum):
    """Custom attribute names as configured on the ticketing platform."""

    TICKET_TYPE = "ticket_type"
    TIER_SUPPORT_TYPE = "🔧Tier 2 Support Type"
    TICKET_CATEGORY = "Ticket category"
    ONSITE_REQUEST_TYPE = "Onsite Request Type"
    DESCRIPTION = "Onsite request description"
    EXPRESS_REQUEST = "Express Request - 3 hours Onsite Request"
    MERCHANT_NAME = "🆔 Merchant Account Name"
    COUNTRY = "🌎 Country"
    PIC_NAME = "PIC Name"
    PIC_EMAIL = "PIC Email"
    PIC_CONTACT = "PIC Contact Number"
    STORE_ADDRESS = "FULL Store Address"


PROGRAM_LABEL = "L2 Onsite Support"
PROGRAM_CATEGORY_KEYWORD = "l2 onsite"
MONITORED_SERVICE_KEYWORD = "onsite"

SITE_INSPECTION_REQUEST_TYPES = frozenset(
    {
        "👥 Site Inspection - New Merchant",
        "👥 Site Inspection - Existing Merchant",
    }
)

BODY_KEYWORDS = ("site inspection", "onsite support", "l2 onsite")

SITE_INSPECTION_KEYWORD = "site inspection"
SITE_INSPECTION_ONSITE_TYPES = (
    "New & Existing Merchant site inspection",
    "Site inspection New and Existing merchants",
    "site inspection",
)

# Older ticket forms carry the same fields without the emoji prefix
ATTRIBUTE_FALLBACKS: dict[str, tuple[str, ...]] = {
    AttributeKey.MERCHANT_NAME: ("Merchant Account Name",),
    AttributeKey.COUNTRY: ("Country",),
}

EXPRESS_AFFIRMATIVE_VALUES = frozenset({"yes", "true", "y", "1"})

PLACEHOLDER_CHAT_IDS = frozenset(
    {
        "oc_placeholder_for_now",
        "oc_myphfe_group_id",
        "oc_complex_setup_group_id",
    }
)

TICKET_URL_TEMPLATE = (
    "https://app.intercom.com/a/apps/{app_id}/inbox/conversation/{ticket_id}"
)
