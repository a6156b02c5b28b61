# Auth module for the Escrow API
# Bearer-token principals and the owner capability

from auth.dependencies import (
    Principal,
    decode_access_token,
    get_current_principal,
)

from auth.capabilities import (
    OwnerCapability,
    get_owner_capability,
)

__all__ = [
    # Principals
    "Principal",
    "decode_access_token",
    "get_current_principal",

    # Capabilities
    "OwnerCapability",
    "get_owner_capability",
]
