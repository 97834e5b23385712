"""Service wiring. One container per process; the API keeps it on app.state."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy.pool import StaticPool

from gitguard.application.authorization_oracle import AuthorizationOracle, bootstrap_oracle
from gitguard.application.notifications import (
    AccessNotifier,
    LoggingNotificationDispatcher,
    NotificationDispatcher,
)
from gitguard.config.settings import AppSettings
from gitguard.governance import (
    AccessRequestRegistry,
    ApprovalQuorumCoordinator,
    AuditLogger,
    RoleAssignmentManager,
)
from gitguard.governance.audit_repository import AuditRepository
from gitguard.governance.repositories import (
    AccessRequestRepository,
    DirectoryRepository,
    RoleAssignmentRepository,
)
from gitguard.infrastructure.database.access_request_repository_db import DbAccessRequestRepository
from gitguard.infrastructure.database.audit_repository_db import DbAuditRepository
from gitguard.infrastructure.database.directory_repository_db import DbDirectoryRepository
from gitguard.infrastructure.database.role_assignment_repository_db import DbRoleAssignmentRepository
from gitguard.infrastructure.database.session import Database
from gitguard.infrastructure.memory import (
    InMemoryAccessRequestRepository,
    InMemoryAuditRepository,
    InMemoryDirectoryRepository,
    InMemoryRoleAssignmentRepository,
)
from gitguard.infrastructure.messaging.rabbitmq_dispatcher import RabbitMQNotificationDispatcher
from gitguard.infrastructure.oracle.permit_client import PermitOracleClient
from gitguard.observability.metrics import MetricsCollector
from gitguard.scalability.circuit_breaker import CircuitBreaker
from gitguard.security.biometric import StoredTokenBiometricVerifier
from gitguard.security.encryption import EncryptionService
from gitguard.security.rbac import InProcessPolicyEngine

logger = logging.getLogger(__name__)

MEMORY_URL = "memory://"


@dataclass
class ServiceContainer:
    settings: AppSettings
    metrics: MetricsCollector
    directory: DirectoryRepository
    requests: AccessRequestRepository
    assignments: RoleAssignmentRepository
    audit_repository: AuditRepository
    oracle: AuthorizationOracle
    dispatcher: NotificationDispatcher
    audit_logger: AuditLogger
    notifier: AccessNotifier
    registry: AccessRequestRegistry
    role_assignments: RoleAssignmentManager
    quorum: ApprovalQuorumCoordinator
    biometrics: StoredTokenBiometricVerifier
    database: Optional[Database] = None

    async def start(self) -> None:
        if self.database is not None:
            await self.database.create_all()
        if self.settings.oracle_bootstrap_on_startup:
            await bootstrap_oracle(self.oracle)
        logger.info(
            "container_started",
            extra={
                "database": "memory" if self.database is None else "sql",
                "oracle": self.settings.oracle_backend,
            },
        )

    async def aclose(self) -> None:
        if isinstance(self.oracle, PermitOracleClient):
            await self.oracle.aclose()
        if isinstance(self.dispatcher, RabbitMQNotificationDispatcher):
            await self.dispatcher.close()
        if self.database is not None:
            await self.database.dispose()


def _database(settings: AppSettings) -> Database:
    kwargs: Dict[str, Any] = {}
    if settings.database_url.startswith("sqlite"):
        # One shared connection so an in-memory database survives across sessions.
        kwargs = {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    else:
        kwargs = {"pool_size": 10, "max_overflow": 20}
    return Database(settings.database_url, echo=settings.database_echo, **kwargs)


def _oracle(settings: AppSettings, metrics: MetricsCollector) -> AuthorizationOracle:
    if settings.oracle_backend == "permit":
        if not settings.permit_api_key:
            raise ValueError("permit_api_key is required when oracle_backend is 'permit'")
        return PermitOracleClient(
            api_url=settings.permit_api_url,
            pdp_url=settings.permit_pdp_url,
            api_key=settings.permit_api_key,
            project=settings.permit_project,
            environment=settings.permit_environment,
            tenant=settings.permit_tenant,
            timeout_seconds=settings.oracle_timeout_seconds,
            breaker=CircuitBreaker(
                failure_threshold=settings.oracle_failure_threshold,
                recovery_timeout_seconds=settings.oracle_recovery_timeout_seconds,
                name="permit",
                metrics=metrics,
            ),
        )
    return InProcessPolicyEngine()


def build_container(
    settings: AppSettings,
    *,
    oracle: Optional[AuthorizationOracle] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
    metrics: Optional[MetricsCollector] = None,
) -> ServiceContainer:
    """Wire repositories, oracle, notifier and the governance services from settings."""
    metrics = metrics or MetricsCollector()

    database: Optional[Database] = None
    if settings.database_url == MEMORY_URL:
        directory: DirectoryRepository = InMemoryDirectoryRepository()
        requests: AccessRequestRepository = InMemoryAccessRequestRepository()
        assignments: RoleAssignmentRepository = InMemoryRoleAssignmentRepository()
        audit_repository: AuditRepository = InMemoryAuditRepository()
    else:
        database = _database(settings)
        directory = DbDirectoryRepository(database)
        requests = DbAccessRequestRepository(database)
        assignments = DbRoleAssignmentRepository(database)
        audit_repository = DbAuditRepository(database)

    if oracle is None:
        oracle = _oracle(settings, metrics)
    if dispatcher is None:
        if settings.rabbitmq_url:
            dispatcher = RabbitMQNotificationDispatcher(
                settings.rabbitmq_url, settings.notification_exchange
            )
        else:
            dispatcher = LoggingNotificationDispatcher()

    audit_logger = AuditLogger(audit_repository, metrics=metrics)
    notifier = AccessNotifier(dispatcher, metrics=metrics)
    registry = AccessRequestRegistry(requests, directory, audit_logger, notifier)
    manager = RoleAssignmentManager(
        requests,
        assignments,
        directory,
        oracle,
        audit_logger,
        notifier,
        metrics=metrics,
    )
    biometrics = StoredTokenBiometricVerifier(
        directory,
        EncryptionService(settings.biometric_encryption_key),
        audit_logger,
    )
    quorum = ApprovalQuorumCoordinator(
        registry,
        requests,
        directory,
        manager,
        biometrics,
        audit_logger,
        notifier,
        metrics=metrics,
    )
    return ServiceContainer(
        settings=settings,
        metrics=metrics,
        directory=directory,
        requests=requests,
        assignments=assignments,
        audit_repository=audit_repository,
        oracle=oracle,
        dispatcher=dispatcher,
        audit_logger=audit_logger,
        notifier=notifier,
        registry=registry,
        role_assignments=manager,
        quorum=quorum,
        biometrics=biometrics,
        database=database,
    )
