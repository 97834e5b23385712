"""Security-layer exceptions. Typed, no HTTP."""

from gitguard.core.exceptions import GitGuardError


class SecurityError(GitGuardError):
    """Base for all security-layer errors."""


class AuthorizationError(SecurityError):
    """Raised when the actor lacks permission to view, approve or reject."""

    kind = "authorization"
    status_code = 403


class VerificationError(SecurityError):
    """Raised when a biometric proof does not validate."""

    kind = "verification"
    status_code = 401


class EncryptionError(SecurityError):
    """Raised when encryption/decryption fails (e.g. missing key, wrong key)."""

    kind = "encryption"
    status_code = 500
