"""User roles and the authenticated actor."""

from enum import Enum
from typing import NamedTuple

from marketplace.shared.errors import ValidationError


class Role(str, Enum):
    CLIENT = "CLIENT"
    PROVIDER = "PROVIDER"

    @classmethod
    def parse(cls, value) -> "Role":
        """Parse a role name case-insensitively.

        Raises:
            ValidationError: If the value is not a known role
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().upper())
        except ValueError as e:
            raise ValidationError("Role must be 'CLIENT' or 'PROVIDER'") from e


class Actor(NamedTuple):
    """Identity of the user performing an operation, as supplied by the token."""

    user_id: int
    role: Role

    @property
    def is_client(self) -> bool:
        return self.role is Role.CLIENT

    @property
    def is_provider(self) -> bool:
        return self.role is Role.PROVIDER
