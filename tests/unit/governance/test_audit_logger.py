"""Governance tests: audit append never raises, ordering, immutability, filtered reads."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from gitguard.domain.exceptions import NotFoundError, ValidationError
from gitguard.governance.audit_logger import AuditLogger
from gitguard.governance.audit_models import (
    AuditAction,
    AuditLogEntry,
    AuditLogQuery,
    ClientContext,
    EntityType,
)
from gitguard.infrastructure.memory import InMemoryAuditRepository
from gitguard.observability.metrics import MetricsCollector


@pytest.fixture
def audit_repository():
    return InMemoryAuditRepository()


@pytest.fixture
def audit_logger(audit_repository):
    return AuditLogger(repository=audit_repository)


async def _append(audit_logger, **overrides):
    fields = dict(
        action=AuditAction.ACCESS_REQUEST_CREATED,
        entity_type=EntityType.ACCESS_REQUEST,
        entity_id="ar-1",
        actor_id="u-1",
        description="Access request created",
    )
    fields.update(overrides)
    return await audit_logger.append(**fields)


async def test_audit_record_fields_and_immutability(audit_logger, audit_repository):
    client = ClientContext(ip_address="127.0.0.1", user_agent="curl/8")
    outcome = await _append(audit_logger, metadata={"k": "v"}, client=client)

    assert outcome.succeeded
    (record,) = audit_repository.entries()
    assert isinstance(record, AuditLogEntry)
    assert record.action == "ACCESS_REQUEST_CREATED"
    assert record.entity_type == "access_request"
    assert record.actor_id == "u-1"
    assert record.metadata == {"k": "v"}
    assert record.created_at.utcoffset() == timedelta(0)
    d = record.to_dict()
    assert d["ip_address"] == "127.0.0.1"
    assert d["user_agent"] == "curl/8"
    with pytest.raises(AttributeError):
        record.actor_id = "other"  # type: ignore[misc]


async def test_append_never_raises_on_repository_failure():
    repository = AsyncMock()
    repository.append.side_effect = RuntimeError("disk full")
    metrics = MetricsCollector()
    audit_logger = AuditLogger(repository=repository, metrics=metrics)

    outcome = await _append(audit_logger)

    assert not outcome.succeeded
    assert "disk full" in outcome.error
    assert metrics.counter("audit_write_failed") == 1
    assert metrics.counter("audit_write_failed", category="ACCESS_REQUEST_CREATED") == 1


async def test_timestamps_strictly_increase(audit_logger, audit_repository):
    for i in range(50):
        await _append(audit_logger, entity_id=f"ar-{i}")
    stamps = [e.created_at for e in audit_repository.entries()]
    assert all(a < b for a, b in zip(stamps, stamps[1:]))


async def test_get_by_id(audit_logger, audit_repository):
    await _append(audit_logger)
    (record,) = audit_repository.entries()
    assert await audit_logger.get(record.id) == record
    with pytest.raises(NotFoundError):
        await audit_logger.get("missing")


async def test_query_filters_and_paginates_newest_first(audit_logger):
    await _append(audit_logger, entity_id="ar-1")
    await _append(audit_logger, entity_id="ar-1", action=AuditAction.ACCESS_REQUEST_APPROVED, actor_id="u-2")
    await _append(audit_logger, entity_id="ar-2")
    await _append(
        audit_logger,
        action=AuditAction.BIOMETRIC_SETUP,
        entity_type=EntityType.USER,
        entity_id="u-2",
        actor_id="u-2",
    )

    by_entity = await audit_logger.query(AuditLogQuery(entity_type="access_request", entity_id="ar-1"))
    assert [e.action for e in by_entity.items] == ["ACCESS_REQUEST_APPROVED", "ACCESS_REQUEST_CREATED"]

    by_actor = await audit_logger.query(AuditLogQuery(actor_id="u-2"))
    assert by_actor.total == 2

    paged = await audit_logger.query(AuditLogQuery(page=2, limit=3))
    assert paged.total == 4
    assert paged.pages == 2
    assert [e.entity_id for e in paged.items] == ["ar-1"]


async def test_query_date_range_is_inclusive(audit_logger, audit_repository):
    for i in range(3):
        await _append(audit_logger, entity_id=f"ar-{i}")
    first, middle, last = audit_repository.entries()

    window = await audit_logger.query(AuditLogQuery(from_date=middle.created_at, to_date=last.created_at))
    assert [e.id for e in window.items] == [last.id, middle.id]

    naive_start = middle.created_at.replace(tzinfo=None)
    assert (await audit_logger.query(AuditLogQuery(from_date=naive_start))).total == 2


def test_query_rejects_inverted_range_and_bad_paging(audit_repository):
    now = datetime.now(timezone.utc)
    with pytest.raises(ValidationError):
        AuditLogQuery(from_date=now, to_date=now - timedelta(seconds=1))
    with pytest.raises(ValidationError):
        AuditLogQuery(limit=0)


async def test_distinct_vocabularies_are_sorted(audit_logger):
    await _append(audit_logger, action=AuditAction.ACCESS_REQUEST_REJECTED)
    await _append(audit_logger, action=AuditAction.BIOMETRIC_SETUP, entity_type=EntityType.USER)
    await _append(audit_logger, action=AuditAction.ACCESS_REQUEST_CREATED)

    assert await audit_logger.list_actions() == [
        "ACCESS_REQUEST_CREATED",
        "ACCESS_REQUEST_REJECTED",
        "BIOMETRIC_SETUP",
    ]
    assert await audit_logger.list_entity_types() == ["access_request", "user"]
