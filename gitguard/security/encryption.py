"""AES-based encryption of secrets at rest (biometric tokens). Key is passed in; fail if missing."""

import base64
import hmac
import os
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from gitguard.security.exceptions import EncryptionError

# Fernet uses AES-128-CBC; we derive a key from the raw secret if needed.
DEFAULT_SALT = b"gitguard_biometric_tokens_v1"
KEY_ENV_VAR = "BIOMETRIC_ENCRYPTION_KEY"


def _derive_key(secret: str, salt: bytes = DEFAULT_SALT) -> bytes:
    """Derive a 32-byte key for Fernet from a variable-length secret."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=480000,
    )
    return base64.urlsafe_b64encode(kdf.derive(secret.encode("utf-8")))


class EncryptionService:
    """
    Fernet encryption. No global state: key is passed in, or read from
    BIOMETRIC_ENCRYPTION_KEY when omitted.
    """

    def __init__(self, key: Optional[str] = None) -> None:
        raw = key or os.environ.get(KEY_ENV_VAR)
        if not raw or not raw.strip():
            raise EncryptionError(
                f"Encryption key is required. Set {KEY_ENV_VAR} in environment."
            )
        self._fernet = Fernet(_derive_key(raw.strip()))

    def encrypt(self, data: str) -> str:
        """Encrypt string; return Fernet token text."""
        try:
            return self._fernet.encrypt(data.encode("utf-8")).decode("ascii")
        except Exception as e:
            raise EncryptionError(f"Encryption failed: {e}") from e

    def decrypt(self, data: str) -> str:
        """Raises EncryptionError if wrong key/corrupt."""
        try:
            return self._fernet.decrypt(data.encode("ascii")).decode("utf-8")
        except InvalidToken as e:
            raise EncryptionError("Decryption failed: invalid or wrong key") from e
        except Exception as e:
            raise EncryptionError(f"Decryption failed: {e}") from e

    def matches(self, ciphertext: str, candidate: str) -> bool:
        """Constant-time comparison of a candidate against an encrypted secret."""
        plain = self.decrypt(ciphertext)
        return hmac.compare_digest(plain.encode("utf-8"), candidate.encode("utf-8"))
