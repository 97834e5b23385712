"""Stored-token biometric verifier: enrollment, fail-closed verification, audit of each attempt."""

from dataclasses import replace

from gitguard.governance.audit_models import AuditLogQuery


async def _user_actions(container, user_id):
    trail = await container.audit_logger.query(AuditLogQuery(entity_type="user", entity_id=user_id))
    return [(e.action, e.description) for e in reversed(trail.items)]


async def test_enroll_stores_only_ciphertext(container):
    token = await container.biometrics.enroll("u-owner")

    user = await container.directory.get_user("u-owner")
    assert user.biometric_enabled
    assert user.biometric_token and token not in user.biometric_token
    assert len(token) == 64
    assert await container.biometrics.verify("ar-1", "u-owner", token)


async def test_reenrollment_replaces_previous_token(container):
    old = await container.biometrics.enroll("u-owner")
    new = await container.biometrics.enroll("u-owner")
    assert not await container.biometrics.verify("ar-1", "u-owner", old)
    assert await container.biometrics.verify("ar-1", "u-owner", new)


async def test_verification_fails_closed(container):
    token = await container.biometrics.enroll("u-owner")

    assert not await container.biometrics.verify("ar-1", "u-owner", "")
    assert not await container.biometrics.verify("ar-1", "u-owner", token[:-1] + "x")
    assert not await container.biometrics.verify("ar-1", "u-missing", token)
    assert not await container.biometrics.verify("ar-1", "u-requester", token)

    # Corrupt ciphertext is a failed verification, not an error.
    user = await container.directory.get_user("u-owner")
    await container.directory.save_user(replace(user, biometric_token="garbage"))
    assert not await container.biometrics.verify("ar-1", "u-owner", token)


async def test_disable_revokes_token(container):
    token = await container.biometrics.enroll("u-owner")
    await container.biometrics.disable("u-owner")

    user = await container.directory.get_user("u-owner")
    assert not user.biometric_enabled
    assert user.biometric_token is None
    assert not await container.biometrics.verify("ar-1", "u-owner", token)


async def test_each_attempt_is_audited(container):
    token = await container.biometrics.enroll("u-owner")
    await container.biometrics.verify("ar-9", "u-owner", token)
    await container.biometrics.verify("ar-9", "u-owner", "wrong")
    await container.biometrics.disable("u-owner")

    assert await _user_actions(container, "u-owner") == [
        ("BIOMETRIC_SETUP", "Biometric authentication enabled"),
        ("BIOMETRIC_VERIFICATION", "Biometric verification successful"),
        ("BIOMETRIC_VERIFICATION", "Biometric verification failed"),
        ("BIOMETRIC_DISABLED", "Biometric authentication disabled"),
    ]
    trail = await container.audit_logger.query(AuditLogQuery(action="BIOMETRIC_VERIFICATION"))
    assert {e.metadata["request_id"] for e in trail.items} == {"ar-9"}
