"""In-memory store: atomic transitions per request, pending uniqueness."""

import asyncio
from dataclasses import replace
from datetime import datetime, timezone

import pytest

from gitguard.domain.exceptions import ConflictError, NotFoundError
from gitguard.domain.models import AccessRequest, AccessRequestStatus
from gitguard.infrastructure.memory import InMemoryAccessRequestRepository

NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)


def _request(request_id="ar-1", requester_id="u-1", **overrides):
    return AccessRequest(
        id=request_id,
        requester_id=requester_id,
        repository_id="repo-1",
        reason="r",
        created_at=NOW,
        role_id="role-1",
        **overrides,
    )


async def test_add_rejects_second_pending_for_same_pair():
    repo = InMemoryAccessRequestRepository()
    await repo.add(_request())
    with pytest.raises(ConflictError):
        await repo.add(_request("ar-2"))
    await repo.add(_request("ar-3", requester_id="u-2"))


async def test_transition_of_missing_request_is_not_found():
    repo = InMemoryAccessRequestRepository()
    with pytest.raises(NotFoundError):
        await repo.transition("missing", lambda r: r)


async def test_failed_transition_writes_nothing():
    repo = InMemoryAccessRequestRepository()
    await repo.add(_request())

    def boom(current):
        raise ConflictError("no")

    with pytest.raises(ConflictError):
        await repo.transition("ar-1", boom)
    assert (await repo.get("ar-1")).status == AccessRequestStatus.PENDING


async def test_transitions_on_one_request_serialize():
    repo = InMemoryAccessRequestRepository()
    await repo.add(_request(approver_ids=tuple(f"a{i}" for i in range(19))))

    results = await asyncio.gather(
        *(
            repo.transition("ar-1", lambda r, actor=f"a{i}": r.record_approval(actor, NOW))
            for i in range(19)
        )
    )
    assert sorted(r.approval_count for r in results) == list(range(1, 20))
    assert (await repo.get("ar-1")).approval_count == 19


async def test_list_overdue_only_pending():
    repo = InMemoryAccessRequestRepository()
    await repo.add(_request(expires_at=NOW))
    await repo.add(_request("ar-2", requester_id="u-2", expires_at=NOW))
    await repo.transition("ar-2", lambda r: replace(r, status=AccessRequestStatus.REJECTED))
    assert [r.id for r in await repo.list_overdue(NOW)] == ["ar-1"]


async def test_locks_are_dropped_once_requests_settle():
    repo = InMemoryAccessRequestRepository()
    await repo.add(_request())
    await repo.add(_request("ar-2", requester_id="u-2"))

    await repo.transition("ar-1", lambda r: r.record_approval("u-owner", NOW))
    assert set(repo._locks) == {"ar-1"}

    await repo.transition("ar-1", lambda r: r.reject("u-owner", NOW))
    await repo.transition("ar-2", lambda r: r.expire(NOW))
    with pytest.raises(ConflictError):
        await repo.transition("ar-2", lambda r: r.expire(NOW))
    with pytest.raises(NotFoundError):
        await repo.transition("missing", lambda r: r)
    assert dict(repo._locks) == {}
