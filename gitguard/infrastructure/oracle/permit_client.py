# gitguard/infrastructure/oracle/permit_client.py

import logging
from typing import Any, Dict, Mapping, Optional, Sequence

import httpx

from gitguard.application.authorization_oracle import sanitize_resource_key
from gitguard.application.exceptions import ExternalServiceError
from gitguard.scalability.circuit_breaker import CircuitBreaker, CircuitOpenError


class PermitOracleClient:
    """
    REST client for a Permit.io-style policy service.
    Management calls go to the API (facts and schema), decisions go to the PDP.
    "Already exists" (409) counts as success so provisioning can be replayed.
    """

    def __init__(
        self,
        *,
        api_url: str,
        pdp_url: str,
        api_key: str,
        project: str = "default",
        environment: str = "dev",
        tenant: str = "default",
        timeout_seconds: float = 5.0,
        breaker: Optional[CircuitBreaker] = None,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._api_url = api_url.rstrip("/")
        self._pdp_url = pdp_url.rstrip("/")
        self._scope = f"{project}/{environment}"
        self._tenant = tenant
        self._headers = {"Authorization": f"Bearer {api_key}"}
        self._breaker = breaker or CircuitBreaker(name="permit")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)
        self._logger = logger or logging.getLogger(__name__)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _send(self, method: str, url: str, payload: Optional[Dict[str, Any]]) -> httpx.Response:
        response = await self._client.request(method, url, json=payload, headers=self._headers)
        if response.status_code == 409:
            return response
        response.raise_for_status()
        return response

    async def _call(self, operation: str, method: str, url: str, payload: Optional[Dict[str, Any]] = None) -> httpx.Response:
        try:
            return await self._breaker.call(self._send, method, url, payload)
        except CircuitOpenError as e:
            raise ExternalServiceError(f"Authorization service unavailable during {operation}") from e
        except httpx.HTTPStatusError as e:
            raise ExternalServiceError(
                f"Authorization service rejected {operation} (HTTP {e.response.status_code})"
            ) from e
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"Authorization service unreachable during {operation}: {e}") from e

    def _facts(self, path: str) -> str:
        return f"{self._api_url}/v2/facts/{self._scope}/{path}"

    def _schema(self, path: str) -> str:
        return f"{self._api_url}/v2/schema/{self._scope}/{path}"

    async def sync_principal(self, principal_id: str, attributes: Mapping[str, Any]) -> None:
        payload = {
            "key": principal_id,
            "email": attributes.get("email"),
            "first_name": attributes.get("first_name"),
            "last_name": attributes.get("last_name"),
            "attributes": dict(attributes),
        }
        await self._call("sync_principal", "PUT", self._facts(f"users/{principal_id}"), payload)

    async def provision_resource(self, key: str, name: str, actions: Mapping[str, str]) -> None:
        payload = {
            "key": sanitize_resource_key(key),
            "name": name,
            "actions": {action: {"name": description} for action, description in actions.items()},
        }
        await self._call("provision_resource", "POST", self._schema("resources"), payload)

    async def provision_role(self, key: str, name: str, permission_keys: Sequence[str]) -> None:
        payload = {"key": key, "name": name, "permissions": list(permission_keys)}
        await self._call("provision_role", "POST", self._schema("roles"), payload)

    def _assignment(self, user_id: str, role_key: str, resource_type: str, resource_instance: str) -> Dict[str, Any]:
        return {
            "user": user_id,
            "role": role_key,
            "tenant": self._tenant,
            "resource_instance": f"{resource_type}:{resource_instance}",
        }

    async def bind_role(self, user_id: str, role_key: str, resource_type: str, resource_instance: str) -> None:
        payload = self._assignment(user_id, role_key, resource_type, resource_instance)
        await self._call("bind_role", "POST", self._facts("role_assignments"), payload)
        self._logger.info(
            "oracle_role_bound",
            extra={"user_id": user_id, "role": role_key, "resource": payload["resource_instance"]},
        )

    async def unbind_role(self, user_id: str, role_key: str, resource_type: str, resource_instance: str) -> None:
        payload = self._assignment(user_id, role_key, resource_type, resource_instance)
        await self._call("unbind_role", "DELETE", self._facts("role_assignments"), payload)

    async def check(
        self,
        user_id: str,
        action: str,
        resource_type: str,
        resource_instance: Optional[str] = None,
    ) -> bool:
        """Fail closed: any error or malformed decision is a denial."""
        resource: Dict[str, Any] = {"type": resource_type, "tenant": self._tenant}
        if resource_instance is not None:
            resource["key"] = resource_instance
        payload = {"user": {"key": user_id}, "action": action, "resource": resource}
        try:
            response = await self._call("check", "POST", f"{self._pdp_url}/allowed", payload)
            decision = response.json()
        except (ExternalServiceError, ValueError) as e:
            self._logger.warning(
                "oracle_check_failed",
                extra={"user_id": user_id, "action": action, "error": str(e)},
            )
            return False
        return isinstance(decision, dict) and decision.get("allow") is True
