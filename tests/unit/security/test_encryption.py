"""Security tests: token encryption round-trip, wrong key, missing key, constant-time match."""

import os
from unittest.mock import patch

import pytest

from gitguard.security.encryption import KEY_ENV_VAR, EncryptionService
from gitguard.security.exceptions import EncryptionError

KEY = "test-secret-key-at-least-32-chars-long-for-aes"


@pytest.fixture(scope="module")
def svc():
    return EncryptionService(key=KEY)


def test_encryption_round_trip_works(svc):
    encrypted = svc.encrypt("a1b2c3")
    assert encrypted != "a1b2c3"
    assert svc.decrypt(encrypted) == "a1b2c3"


def test_encryption_is_not_deterministic(svc):
    assert svc.encrypt("same") != svc.encrypt("same")


def test_encryption_fails_with_wrong_key(svc):
    encrypted = svc.encrypt("secret")
    other = EncryptionService(key="other-secret-key-at-least-32-chars-long-for-aes")
    with pytest.raises(EncryptionError) as exc_info:
        other.decrypt(encrypted)
    assert "wrong key" in exc_info.value.message


def test_encryption_fails_if_key_missing():
    with patch.dict(os.environ, {KEY_ENV_VAR: ""}, clear=False):
        with pytest.raises(EncryptionError) as exc_info:
            EncryptionService(key=None)
    assert KEY_ENV_VAR in exc_info.value.message


def test_key_read_from_environment():
    with patch.dict(os.environ, {KEY_ENV_VAR: KEY}, clear=False):
        from_env = EncryptionService()
    assert from_env.decrypt(EncryptionService(key=KEY).encrypt("x")) == "x"


def test_matches_compares_plaintext(svc):
    ciphertext = svc.encrypt("token-123")
    assert svc.matches(ciphertext, "token-123")
    assert not svc.matches(ciphertext, "token-124")
    with pytest.raises(EncryptionError):
        svc.matches("not-a-fernet-token", "token-123")
