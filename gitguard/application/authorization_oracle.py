"""Authorization oracle port. The core provisions and binds through this; implementations live in security/infrastructure."""

import logging
import re
from typing import Any, Dict, Mapping, Optional, Protocol, Sequence

logger = logging.getLogger(__name__)

REPOSITORY_RESOURCE = "repository"

_INVALID_KEY_CHARS = re.compile(r"[^A-Za-z0-9\-_]")

# Default vocabulary provisioned at startup: action -> description
REPOSITORY_ACTIONS: Dict[str, str] = {
    "view": "View repository contents",
    "clone": "Clone repository",
    "push": "Push changes to repository",
    "admin": "Administer repository settings",
    "delete": "Delete repository",
    "create": "Create new repository",
    "update": "Update repository information",
    "read": "Read repository data",
}

DEFAULT_ROLES: Dict[str, tuple[str, Sequence[str]]] = {
    "viewer": ("Viewer", ("view",)),
    "contributor": ("Contributor", ("view", "clone", "push")),
    "admin": ("Administrator", tuple(REPOSITORY_ACTIONS)),
}


def sanitize_resource_key(key: str) -> str:
    """Oracle keys must match ^[A-Za-z0-9\\-_]+$; colons and other separators become underscores."""
    return _INVALID_KEY_CHARS.sub("_", key)


class AuthorizationOracle(Protocol):
    """
    External policy-decision service.
    Provisioning calls are idempotent ("already exists" is success). check() fails closed.
    Provisioning and binding raise ExternalServiceError on transport or remote failure.
    """

    async def sync_principal(self, principal_id: str, attributes: Mapping[str, Any]) -> None:
        ...

    async def provision_resource(self, key: str, name: str, actions: Mapping[str, str]) -> None:
        ...

    async def provision_role(self, key: str, name: str, permission_keys: Sequence[str]) -> None:
        ...

    async def bind_role(
        self,
        user_id: str,
        role_key: str,
        resource_type: str,
        resource_instance: str,
    ) -> None:
        ...

    async def unbind_role(
        self,
        user_id: str,
        role_key: str,
        resource_type: str,
        resource_instance: str,
    ) -> None:
        ...

    async def check(
        self,
        user_id: str,
        action: str,
        resource_type: str,
        resource_instance: Optional[str] = None,
    ) -> bool:
        ...


async def bootstrap_oracle(oracle: AuthorizationOracle) -> None:
    """Provision the repository resource and the standard roles. Safe to run on every startup."""
    await oracle.provision_resource(REPOSITORY_RESOURCE, "Repository", REPOSITORY_ACTIONS)
    for key, (name, actions) in DEFAULT_ROLES.items():
        await oracle.provision_role(
            key, name, [f"{REPOSITORY_RESOURCE}:{action}" for action in actions]
        )
    logger.info("oracle_bootstrapped", extra={"roles": list(DEFAULT_ROLES)})
