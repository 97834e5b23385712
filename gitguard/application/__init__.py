# Application layer: ports to external collaborators (oracle, biometrics, notifications) and their exceptions.

from gitguard.application.authorization_oracle import (
    AuthorizationOracle,
    bootstrap_oracle,
    sanitize_resource_key,
)
from gitguard.application.biometric_verifier import BiometricVerifier
from gitguard.application.exceptions import ApplicationError, ExternalServiceError
from gitguard.application.notifications import (
    AccessNotifier,
    LoggingNotificationDispatcher,
    NotificationDispatcher,
)

__all__ = [
    "AccessNotifier",
    "ApplicationError",
    "AuthorizationOracle",
    "BiometricVerifier",
    "ExternalServiceError",
    "LoggingNotificationDispatcher",
    "NotificationDispatcher",
    "bootstrap_oracle",
    "sanitize_resource_key",
]
