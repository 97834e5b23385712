"""Shared fixtures: settings, a seeded in-memory service container, enrolled biometric tokens."""

import os

os.environ.setdefault("BIOMETRIC_ENCRYPTION_KEY", "test-biometric-key-0123456789")

import pytest

from gitguard.config.settings import AppSettings
from gitguard.container import build_container
from gitguard.domain.models import Organization, Repository, Role, User

OWNER = "u-owner"
REQUESTER = "u-requester"
APPROVER_A = "u-approver-a"
APPROVER_B = "u-approver-b"
OUTSIDER = "u-outsider"

ORG = "org-1"
OTHER_ORG = "org-2"
REPO = "repo-1"
OTHER_REPO = "repo-2"
CONTRIBUTOR_ROLE = "role-contributor"
FOREIGN_ROLE = "role-foreign"


class RecordingDispatcher:
    """Captures notifications instead of delivering them."""

    def __init__(self):
        self.sent: list[dict] = []

    async def notify(self, user_id, title, body, metadata):
        self.sent.append({"user_id": user_id, "title": title, "body": body, "metadata": metadata})

    def recipients(self, title: str) -> list[str]:
        return [n["user_id"] for n in self.sent if n["title"] == title]


async def seed_directory(directory) -> None:
    await directory.save_organization(Organization(id=ORG, name="Acme"))
    await directory.save_organization(Organization(id=OTHER_ORG, name="Globex"))
    for user_id, first, last in [
        (OWNER, "Olive", "Owner"),
        (REQUESTER, "Riley", "Requester"),
        (APPROVER_A, "Avery", "Approver"),
        (APPROVER_B, "Blake", "Approver"),
        (OUTSIDER, "Oscar", "Outsider"),
    ]:
        await directory.save_user(
            User(id=user_id, email=f"{user_id}@example.com", first_name=first, last_name=last)
        )
    await directory.save_repository(
        Repository(id=REPO, name="payments-api", organization_id=ORG, owner_id=OWNER)
    )
    await directory.save_repository(
        Repository(id=OTHER_REPO, name="ledger", organization_id=ORG, owner_id=APPROVER_A)
    )
    await directory.save_role(
        Role(
            id=CONTRIBUTOR_ROLE,
            key="contributor",
            name="Contributor",
            organization_id=ORG,
            actions=("view", "clone", "push"),
        )
    )
    await directory.save_role(
        Role(id=FOREIGN_ROLE, key="viewer", name="Viewer", organization_id=OTHER_ORG, actions=("view",))
    )


@pytest.fixture
def settings():
    return AppSettings(
        environment="test",
        database_url="memory://",
        biometric_encryption_key=os.environ["BIOMETRIC_ENCRYPTION_KEY"],
    )


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
async def make_container(settings, dispatcher):
    """Factory for seeded, started containers; overrides go to build_container (e.g. oracle=...)."""
    built = []

    async def _make(**overrides):
        overrides.setdefault("dispatcher", dispatcher)
        c = build_container(overrides.pop("settings", settings), **overrides)
        await c.start()
        await seed_directory(c.directory)
        built.append(c)
        return c

    yield _make
    for c in built:
        await c.aclose()


@pytest.fixture
async def container(make_container):
    return await make_container()


@pytest.fixture
async def tokens(container):
    """Raw biometric tokens for every user allowed to decide on REPO requests."""
    return {
        user_id: await container.biometrics.enroll(user_id)
        for user_id in (OWNER, APPROVER_A, APPROVER_B, OUTSIDER)
    }
