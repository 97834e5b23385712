"""In-process role-based access control. Implements the authorization oracle port without a remote service."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Mapping, Optional, Sequence, Set, Tuple

from gitguard.application.authorization_oracle import sanitize_resource_key
from gitguard.application.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

# Holding "<type>:admin" implies every action on that resource type.
ADMIN_ACTION = "admin"

Binding = Tuple[str, str, str, str]  # (user, role, resource_type, resource_instance)


@dataclass
class _RoleDef:
    name: str
    permissions: FrozenSet[str] = field(default_factory=frozenset)


class InProcessPolicyEngine:
    """
    Permission matrix held in memory: resources declare actions, roles hold
    "<resource_type>:<action>" permission keys, bindings scope a role to one resource instance.
    Provisioning is idempotent; check() fails closed.
    """

    def __init__(self) -> None:
        self._principals: Dict[str, Dict[str, Any]] = {}
        self._resources: Dict[str, Dict[str, str]] = {}
        self._roles: Dict[str, _RoleDef] = {}
        self._bindings: Set[Binding] = set()

    async def sync_principal(self, principal_id: str, attributes: Mapping[str, Any]) -> None:
        self._principals[principal_id] = dict(attributes)

    async def provision_resource(self, key: str, name: str, actions: Mapping[str, str]) -> None:
        key = sanitize_resource_key(key)
        if key in self._resources:
            logger.info("oracle_resource_exists", extra={"resource_key": key})
            return
        self._resources[key] = dict(actions)

    async def provision_role(self, key: str, name: str, permission_keys: Sequence[str]) -> None:
        if key in self._roles:
            logger.info("oracle_role_exists", extra={"role_key": key})
            return
        self._roles[key] = _RoleDef(name=name, permissions=frozenset(permission_keys))

    async def bind_role(
        self,
        user_id: str,
        role_key: str,
        resource_type: str,
        resource_instance: str,
    ) -> None:
        if role_key not in self._roles:
            raise ExternalServiceError(f"Role '{role_key}' is not provisioned")
        self._bindings.add((user_id, role_key, resource_type, resource_instance))

    async def unbind_role(
        self,
        user_id: str,
        role_key: str,
        resource_type: str,
        resource_instance: str,
    ) -> None:
        self._bindings.discard((user_id, role_key, resource_type, resource_instance))

    def _permits(
        self,
        user_id: str,
        action: str,
        resource_type: str,
        resource_instance: Optional[str],
    ) -> bool:
        wanted = {f"{resource_type}:{action}", f"{resource_type}:{ADMIN_ACTION}"}
        for bound_user, role_key, bound_type, bound_instance in self._bindings:
            if bound_user != user_id or bound_type != resource_type:
                continue
            if resource_instance is not None and bound_instance != resource_instance:
                continue
            role = self._roles.get(role_key)
            if role is not None and wanted & role.permissions:
                return True
        return False

    async def check(
        self,
        user_id: str,
        action: str,
        resource_type: str,
        resource_instance: Optional[str] = None,
    ) -> bool:
        try:
            return self._permits(user_id, action, resource_type, resource_instance)
        except Exception as e:
            logger.warning(
                "oracle_check_failed",
                extra={"user_id": user_id, "permission": action, "error": str(e)},
            )
            return False

    def bindings_for(self, user_id: str) -> FrozenSet[Binding]:
        return frozenset(b for b in self._bindings if b[0] == user_id)
