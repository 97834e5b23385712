"""Registry tests: creation contract, pending uniqueness, visibility, listing, expiry sweep."""

from datetime import datetime, timedelta, timezone

import pytest

from gitguard.domain.exceptions import ConflictError, NotFoundError, ValidationError
from gitguard.domain.models import AccessRequestStatus
from gitguard.governance.audit_models import AuditLogQuery, ClientContext
from gitguard.governance.repositories import AccessRequestQuery
from gitguard.security.exceptions import AuthorizationError


async def _create(container, **overrides):
    fields = dict(
        requester_id="u-requester",
        repository_id="repo-1",
        role_id="role-contributor",
        reason="Fixing the settlement job",
    )
    fields.update(overrides)
    return await container.registry.create(**fields)


async def test_create_persists_pending_request_and_audits(container):
    client = ClientContext(ip_address="10.0.0.7", user_agent="pytest")
    request = await _create(container, client=client)

    assert request.status == AccessRequestStatus.PENDING
    assert request.approval_count == 0
    assert await container.registry.get(request.id) == request

    trail = await container.audit_logger.query(
        AuditLogQuery(entity_type="access_request", entity_id=request.id)
    )
    assert [e.action for e in trail.items] == ["ACCESS_REQUEST_CREATED"]
    entry = trail.items[0]
    assert entry.actor_id == "u-requester"
    assert entry.client == client
    assert "payments-api" in entry.description


async def test_create_notifies_owner_and_each_other_approver_once(container, dispatcher):
    request = await _create(
        container,
        approver_ids=["u-approver-a", "u-owner", "u-approver-a"],
        requires_multi_approval=True,
    )
    # The owner always counts once, so listing them again must not inflate the quorum.
    assert request.approver_ids == ("u-approver-a",)
    assert request.required_approvals == 2
    assert dispatcher.recipients("Access Approval Request") == ["u-owner", "u-approver-a"]
    first = dispatcher.sent[0]
    assert first["metadata"]["deep_link"].startswith("gitguard://approvals/")
    assert first["metadata"]["requester_name"] == "Riley Requester"


async def test_action_only_request_is_accepted(container):
    request = await _create(container, role_id=None, actions=["view", "clone", "view"])
    assert request.role_id is None
    assert request.requested_actions == ("view", "clone")


@pytest.mark.parametrize(
    "overrides, error",
    [
        ({"requester_id": "u-unknown"}, NotFoundError),
        ({"repository_id": "missing"}, NotFoundError),
        ({"role_id": "missing"}, NotFoundError),
        ({"role_id": None}, ValidationError),
        ({"actions": ["push"]}, ValidationError),
        ({"reason": "   "}, ValidationError),
        ({"role_id": "role-foreign"}, ValidationError),
    ],
)
async def test_create_rejects_invalid_input_without_persisting(container, overrides, error):
    with pytest.raises(error):
        await _create(container, **overrides)
    page = await container.registry.list(AccessRequestQuery())
    assert page.total == 0
    trail = await container.audit_logger.query(AuditLogQuery(entity_type="access_request"))
    assert trail.total == 0


async def test_create_rejects_past_expiry(container):
    with pytest.raises(ValidationError, match="future"):
        await _create(container, expires_at=datetime.now(timezone.utc) - timedelta(minutes=1))


async def test_naive_expiry_is_taken_as_utc(container):
    naive = (datetime.now(timezone.utc) + timedelta(days=1)).replace(tzinfo=None)
    request = await _create(container, expires_at=naive)
    assert request.expires_at.tzinfo is not None
    assert request.expires_at.replace(tzinfo=None) == naive


async def test_duplicate_pending_request_is_conflict(container):
    first = await _create(container)
    with pytest.raises(ConflictError):
        await _create(container, role_id=None, actions=["view"])

    # Once the first is decided, a new request may be made.
    await container.quorum.reject(first.id, "u-owner", "not this sprint")
    second = await _create(container)
    assert second.id != first.id


async def test_get_unknown_request_is_not_found(container):
    with pytest.raises(NotFoundError):
        await container.registry.get("nope")


async def test_get_for_viewer_enforces_visibility(container):
    request = await _create(container, approver_ids=["u-approver-a"], requires_multi_approval=True)
    for viewer in ("u-requester", "u-owner", "u-approver-a"):
        assert (await container.registry.get_for_viewer(request.id, viewer)).id == request.id
    with pytest.raises(AuthorizationError):
        await container.registry.get_for_viewer(request.id, "u-outsider")


async def test_list_filters_by_caller_role(container):
    on_repo = await _create(container)
    on_other = await _create(container, repository_id="repo-2")
    by_outsider = await _create(
        container, requester_id="u-outsider", approver_ids=["u-approver-a"]
    )

    mine = await container.registry.list(
        AccessRequestQuery(caller_id="u-requester", caller_role="requester")
    )
    assert {r.id for r in mine.items} == {on_repo.id, on_other.id}

    # Owner of repo-1 sees pending requests on it.
    owner_view = await container.registry.list(
        AccessRequestQuery(caller_id="u-owner", caller_role="approver")
    )
    assert {r.id for r in owner_view.items} == {on_repo.id, by_outsider.id}

    # approver-a owns repo-2 and is a designated approver on by_outsider.
    approver_view = await container.registry.list(
        AccessRequestQuery(caller_id="u-approver-a", caller_role="approver")
    )
    assert {r.id for r in approver_view.items} == {on_other.id, by_outsider.id}


async def test_list_type_overrides_status_and_paginates_newest_first(container):
    created = []
    for requester in ("u-requester", "u-outsider", "u-approver-b"):
        created.append(await _create(container, requester_id=requester))
    await container.quorum.reject(created[0].id, "u-owner")

    pending = await container.registry.list(
        AccessRequestQuery(status=AccessRequestStatus.REJECTED, request_type="pending")
    )
    assert pending.total == 2

    everything = await container.registry.list(
        AccessRequestQuery(status=AccessRequestStatus.REJECTED, request_type="all")
    )
    assert [r.id for r in everything.items] == [created[0].id]

    page_one = await container.registry.list(AccessRequestQuery(limit=2))
    assert page_one.total == 3
    assert page_one.pages == 2
    assert [r.id for r in page_one.items] == [created[2].id, created[1].id]
    page_two = await container.registry.list(AccessRequestQuery(page=2, limit=2))
    assert [r.id for r in page_two.items] == [created[0].id]


def test_query_validation():
    with pytest.raises(ValidationError):
        AccessRequestQuery(page=0)
    with pytest.raises(ValidationError):
        AccessRequestQuery(limit=101)
    with pytest.raises(ValidationError):
        AccessRequestQuery(request_type="archived")
    with pytest.raises(ValidationError):
        AccessRequestQuery(caller_role="approver")


async def test_expire_overdue_moves_pending_to_expired(container, tokens):
    soon = datetime.now(timezone.utc) + timedelta(minutes=5)
    overdue = await _create(container, expires_at=soon)
    not_due = await _create(container, requester_id="u-outsider")
    decided = await _create(container, requester_id="u-approver-b", expires_at=soon)
    await container.quorum.approve(decided.id, "u-owner", tokens["u-owner"])

    later = soon + timedelta(minutes=1)
    expired = await container.registry.expire_overdue(now=later)

    assert [r.id for r in expired] == [overdue.id]
    assert expired[0].status == AccessRequestStatus.EXPIRED
    assert expired[0].expired_at == later
    assert (await container.registry.get(not_due.id)).status == AccessRequestStatus.PENDING
    assert (await container.registry.get(decided.id)).status == AccessRequestStatus.APPROVED

    trail = await container.audit_logger.query(
        AuditLogQuery(entity_id=overdue.id, action="ACCESS_REQUEST_EXPIRED")
    )
    assert trail.total == 1
    assert trail.items[0].actor_id == "system"

    assert await container.registry.expire_overdue(now=later) == []
    with pytest.raises(ConflictError):
        await container.quorum.approve(overdue.id, "u-owner", tokens["u-owner"])
