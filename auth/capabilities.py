# Administrative capabilities

from config.app_config import OWNER_ADDRESS
from core.errors import NotOwner


class OwnerCapability:
    """
    Held by the single designated owner and checked on every privileged call.
    An empty owner address means no one holds it.
    """

    def __init__(self, owner: str):
        self.owner = owner

    def allows(self, caller: str) -> bool:
        return bool(self.owner) and caller == self.owner

    def check(self, caller: str) -> None:
        if not self.allows(caller):
            raise NotOwner()


owner_capability = OwnerCapability(OWNER_ADDRESS)


def get_owner_capability() -> OwnerCapability:
    """FastAPI dependency. Override in tests."""
    return owner_capability
