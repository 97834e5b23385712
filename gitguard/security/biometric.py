"""Biometric approval proofs. Verification is fail-closed: any doubt is a denial."""

import logging
import secrets
from dataclasses import replace
from typing import Optional

from gitguard.domain.exceptions import NotFoundError
from gitguard.governance.audit_logger import AuditLogger
from gitguard.governance.audit_models import AuditAction, EntityType
from gitguard.governance.repositories import DirectoryRepository
from gitguard.security.encryption import EncryptionService

TOKEN_BYTES = 32


class StoredTokenBiometricVerifier:
    """
    Device-bound token scheme: enrollment issues a random token that the client
    unlocks with the device's biometric sensor. Tokens are stored encrypted.
    """

    def __init__(
        self,
        directory: DirectoryRepository,
        encryption: EncryptionService,
        audit_logger: AuditLogger,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._directory = directory
        self._encryption = encryption
        self._audit = audit_logger
        self._logger = logger or logging.getLogger(__name__)

    async def enroll(self, user_id: str) -> str:
        """Issue a fresh token (replacing any previous one). Returns the raw token once."""
        user = await self._directory.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found")
        token = secrets.token_hex(TOKEN_BYTES)
        await self._directory.save_user(
            replace(
                user,
                biometric_enabled=True,
                biometric_token=self._encryption.encrypt(token),
            )
        )
        await self._audit.append(
            action=AuditAction.BIOMETRIC_SETUP,
            entity_type=EntityType.USER,
            entity_id=user_id,
            actor_id=user_id,
            description="Biometric authentication enabled",
        )
        return token

    async def disable(self, user_id: str) -> None:
        user = await self._directory.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found")
        await self._directory.save_user(
            replace(user, biometric_enabled=False, biometric_token=None)
        )
        await self._audit.append(
            action=AuditAction.BIOMETRIC_DISABLED,
            entity_type=EntityType.USER,
            entity_id=user_id,
            actor_id=user_id,
            description="Biometric authentication disabled",
        )

    async def _token_matches(self, user_id: str, token: str) -> bool:
        if not token:
            return False
        user = await self._directory.get_user(user_id)
        if user is None or not user.biometric_enabled or not user.biometric_token:
            return False
        return self._encryption.matches(user.biometric_token, token)

    async def verify(self, request_id: str, user_id: str, token: str) -> bool:
        try:
            valid = await self._token_matches(user_id, token)
        except Exception as e:
            self._logger.warning(
                "biometric_verification_error",
                extra={"user_id": user_id, "request_id": request_id, "error": str(e)},
            )
            valid = False

        await self._audit.append(
            action=AuditAction.BIOMETRIC_VERIFICATION,
            entity_type=EntityType.USER,
            entity_id=user_id,
            actor_id=user_id,
            description=(
                "Biometric verification successful"
                if valid
                else "Biometric verification failed"
            ),
            metadata={"request_id": request_id},
        )
        return valid
