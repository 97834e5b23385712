"""Security: in-process RBAC engine, biometric proofs, encryption at rest. No FastAPI."""

from gitguard.security.encryption import EncryptionService
from gitguard.security.exceptions import (
    AuthorizationError,
    EncryptionError,
    SecurityError,
    VerificationError,
)
from gitguard.security.rbac import InProcessPolicyEngine

__all__ = [
    "AuthorizationError",
    "EncryptionError",
    "EncryptionService",
    "InProcessPolicyEngine",
    "SecurityError",
    "VerificationError",
]
