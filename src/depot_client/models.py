"""Session and user profile models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class Role(str, Enum):
    """Role of a user within its tenant."""

    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    DELIVERY_PERSON = "DELIVERY_PERSON"


class SessionState(str, Enum):
    UNKNOWN = "unknown"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"


@dataclass(frozen=True)
class UserProfile:
    """Profile returned by ``/auth/me``.

    ``tenant_id`` scopes every business-data request made on behalf of the user.
    """

    id: str
    email: str
    name: str
    phone: str
    tenant_id: str
    tenant_name: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    def to_dict(self) -> dict[str, Any]:
        """Convert to the backend's camelCase form."""
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "phone": self.phone,
            "tenantId": self.tenant_id,
            "tenantName": self.tenant_name,
            "role": self.role.value,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "UserProfile":
        """Create from a backend payload.

        Extra fields (including ``password``) are dropped.

        Raises:
            ValueError: If the payload is not an object, has no ``id``
                or carries an unknown role
        """
        if not isinstance(data, dict):
            raise ValueError(f"Invalid profile payload: {type(data).__name__}")

        user_id = data.get("id")
        if not user_id:
            raise ValueError("Invalid profile payload: missing id")

        raw_role = data.get("role")
        try:
            role = Role(raw_role)
        except ValueError:
            raise ValueError(f"Invalid profile payload: unknown role {raw_role!r}") from None

        return cls(
            id=str(user_id),
            email=str(data.get("email") or ""),
            name=str(data.get("name") or ""),
            phone=str(data.get("phone") or ""),
            tenant_id=str(data.get("tenantId") or ""),
            tenant_name=str(data.get("tenantName") or ""),
            role=role,
        )


@dataclass
class Session:
    """Process-wide session state, mutated only by ``SessionController``."""

    user: UserProfile | None = None
    loading: bool = True

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def state(self) -> SessionState:
        if self.user is not None:
            return SessionState.AUTHENTICATED
        if self.loading:
            return SessionState.UNKNOWN
        return SessionState.ANONYMOUS
