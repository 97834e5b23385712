"""Directory entities: users, organizations, repositories, roles and grants."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple


@dataclass(frozen=True)
class User:
    id: str
    email: str
    first_name: str = ""
    last_name: str = ""
    biometric_enabled: bool = False
    biometric_token: Optional[str] = None  # Fernet ciphertext, never the raw token
    push_token: Optional[str] = None

    @property
    def display_name(self) -> str:
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.email

    def profile_attributes(self) -> dict:
        """Attributes mirrored to the authorization oracle."""
        return {
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "biometric_enabled": self.biometric_enabled,
        }


@dataclass(frozen=True)
class Organization:
    id: str
    name: str


@dataclass(frozen=True)
class Repository:
    """Protected resource. Exactly one owner."""

    id: str
    name: str
    organization_id: str
    owner_id: str
    description: Optional[str] = None
    git_provider: Optional[str] = None
    git_repo_url: Optional[str] = None


@dataclass(frozen=True)
class Role:
    """Named, ordered set of permitted actions scoped to an organization."""

    id: str
    key: str
    name: str
    organization_id: str
    actions: Tuple[str, ...] = ()

    def permission_keys(self, resource_type: str = "repository") -> Tuple[str, ...]:
        return tuple(f"{resource_type}:{action}" for action in self.actions)


@dataclass(frozen=True)
class RoleAssignment:
    """Grant of one role to one user over one repository. Immutable once created."""

    id: str
    user_id: str
    role_id: str
    repository_id: str
    created_at: datetime
    expires_at: Optional[datetime] = None

    def is_active(self, now: datetime) -> bool:
        return self.expires_at is None or self.expires_at > now
