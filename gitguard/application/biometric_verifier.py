"""Biometric verifier port."""

from typing import Protocol


class BiometricVerifier(Protocol):
    async def verify(self, request_id: str, user_id: str, token: str) -> bool:
        """True only when the proof validates for this user. Implementations must not grant on error."""
        ...
