# storefront/domain/identity.py
from dataclasses import dataclass


@dataclass(frozen=True)
class CurrentUser:
    """Identity taken from a verified bearer token."""

    id: int
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
