"""Finalize tests: grant creation, oracle sync outcome, no rollback on oracle failure."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from gitguard.application.exceptions import ExternalServiceError
from gitguard.domain.exceptions import ConflictError
from gitguard.domain.models import AccessRequestStatus
from gitguard.governance.audit_models import AuditLogQuery


async def _create(container, **overrides):
    fields = dict(
        requester_id="u-requester",
        repository_id="repo-1",
        role_id="role-contributor",
        reason="Rotate the deploy keys",
    )
    fields.update(overrides)
    return await container.registry.create(**fields)


async def _approved_entry(container, request_id):
    trail = await container.audit_logger.query(
        AuditLogQuery(entity_id=request_id, action="ACCESS_REQUEST_APPROVED")
    )
    assert trail.total == 1
    return trail.items[0]


async def test_finalize_with_role_creates_one_assignment_and_binds(container):
    expiry = datetime.now(timezone.utc) + timedelta(days=7)
    request = await _create(container, expires_at=expiry)

    approved = await container.role_assignments.finalize(request, "u-owner")

    assert approved.status == AccessRequestStatus.APPROVED
    grants = await container.role_assignments.active_assignments("u-requester", "repo-1")
    assert len(grants) == 1
    assert grants[0].expires_at == expiry
    assert ("u-requester", "contributor", "repository", "repo-1") in container.oracle.bindings_for(
        "u-requester"
    )

    entry = await _approved_entry(container, request.id)
    assert entry.metadata["role_assignment_id"] == grants[0].id
    assert entry.metadata["oracle_sync"] == {"name": "oracle_sync", "succeeded": True, "error": None}
    assert container.metrics.counter("access_request_finalized") == 1


async def test_finalize_action_only_request_grants_nothing(container):
    request = await _create(container, role_id=None, actions=["view"])

    approved = await container.role_assignments.finalize(request, "u-owner")

    assert approved.status == AccessRequestStatus.APPROVED
    assert await container.role_assignments.active_assignments("u-requester", "repo-1") == []
    assert container.oracle.bindings_for("u-requester") == frozenset()
    entry = await _approved_entry(container, request.id)
    assert entry.metadata["role_assignment_id"] is None
    assert entry.metadata["oracle_sync"]["error"] == "skipped"


async def test_oracle_failure_is_recorded_not_rolled_back(make_container, dispatcher):
    oracle = AsyncMock()
    oracle.bind_role.side_effect = ExternalServiceError("policy service down")
    container = await make_container(oracle=oracle)
    request = await _create(container)

    approved = await container.role_assignments.finalize(request, "u-owner")

    assert approved.status == AccessRequestStatus.APPROVED
    assert (await container.registry.get(request.id)).status == AccessRequestStatus.APPROVED
    assert len(await container.role_assignments.active_assignments("u-requester", "repo-1")) == 1
    oracle.sync_principal.assert_awaited_once()
    oracle.bind_role.assert_awaited_once_with("u-requester", "contributor", "repository", "repo-1")

    entry = await _approved_entry(container, request.id)
    assert entry.metadata["oracle_sync"]["succeeded"] is False
    assert "policy service down" in entry.metadata["oracle_sync"]["error"]
    assert container.metrics.counter("oracle_sync_failed") == 1
    assert dispatcher.recipients("Access Request Approved") == ["u-requester"]


async def test_principal_sync_failure_still_binds(make_container):
    oracle = AsyncMock()
    oracle.sync_principal.side_effect = ExternalServiceError("timeout")
    container = await make_container(oracle=oracle)
    request = await _create(container)

    await container.role_assignments.finalize(request, "u-owner")

    oracle.bind_role.assert_awaited_once()
    entry = await _approved_entry(container, request.id)
    assert entry.metadata["oracle_sync"]["succeeded"] is True


async def test_finalize_after_rejection_is_conflict(container):
    request = await _create(container)
    await container.quorum.reject(request.id, "u-owner")

    with pytest.raises(ConflictError):
        await container.role_assignments.finalize(request, "u-owner")
    assert await container.role_assignments.active_assignments("u-requester", "repo-1") == []


async def test_active_assignments_drop_elapsed_grants(container):
    expiry = datetime.now(timezone.utc) + timedelta(hours=1)
    request = await _create(container, expires_at=expiry)
    await container.role_assignments.finalize(request, "u-owner")

    assert len(await container.role_assignments.active_assignments("u-requester", "repo-1")) == 1
    later = expiry + timedelta(seconds=1)
    assert await container.role_assignments.active_assignments("u-requester", "repo-1", now=later) == []


async def test_notification_failure_does_not_fail_finalize(container, dispatcher):
    request = await _create(container)

    async def broken(*args, **kwargs):
        raise ConnectionError("broker unreachable")

    dispatcher.notify = broken
    approved = await container.role_assignments.finalize(request, "u-owner")

    assert approved.status == AccessRequestStatus.APPROVED
    assert container.metrics.counter("notification_failed") == 1
