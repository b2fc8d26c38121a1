# app/core/contractor_roles.py
"""
Capability names and default role seeds for contractor organizations.

Every ContractorRole row carries one boolean column per capability; a member's
effective permission is the OR of that column across all roles they hold.
"""

from typing import Dict, List, Literal, get_args

Capability = Literal[
    "manage_orders",
    "manage_roles",
    "manage_market",
    "manage_recruiting",
    "manage_webhooks",
    "manage_invites",
    "manage_org_details",
    "manage_stock",
    "kick_members",
]

CAPABILITIES: List[str] = list(get_args(Capability))

# Roles seeded when an organization is created, keyed by name.
# Lower position = higher precedence.
DEFAULT_ROLES: Dict[str, Dict] = {
    "Owner": {"position": 0, "capabilities": {c: True for c in CAPABILITIES}},
    "Admin": {"position": 1, "capabilities": {c: True for c in CAPABILITIES}},
    "Member": {"position": 10, "capabilities": {c: False for c in CAPABILITIES}},
}

OWNER_ROLE_NAME = "Owner"
DEFAULT_ROLE_NAME = "Member"


def validate_capability(capability: str) -> str:
    """
    Return the capability unchanged, or raise for an unknown name.

    Raises:
        ValueError: If the capability is not a ContractorRole flag
    """
    if capability not in CAPABILITIES:
        raise ValueError(
            f"Invalid capability '{capability}'. Must be one of: {', '.join(CAPABILITIES)}"
        )
    return capability
