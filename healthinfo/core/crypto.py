"""
Field-level encryption for sensitive record fields.

Each value is sealed independently with AES-256-GCM under the single static
key from ENCRYPTION_KEY. The stored form is one lower-case hex string:

    IV (16 bytes) || auth tag (16 bytes) || ciphertext

Encryption never raises: it reports EMPTY or FAILED through EncryptResult so
writers can abort. Decryption always raises DecryptionError on bad input so
readers can isolate a corrupt field and keep the rest of the record.
"""
import base64
import binascii
import logging
import os
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Any, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from healthinfo.core.config import ENCRYPTION_KEY_BYTES, Settings, get_settings

logger = logging.getLogger(__name__)

IV_LENGTH = 16
TAG_LENGTH = 16
MIN_ENCODED_LENGTH = (IV_LENGTH + TAG_LENGTH) * 2


class DecryptionError(Exception):
    """Raised when an encrypted field is malformed, tampered with, or sealed under another key."""


class EncryptStatus(str, Enum):
    OK = "ok"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass(frozen=True)
class EncryptResult:
    """Outcome of encrypting one field."""
    status: EncryptStatus
    value: Optional[str] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is EncryptStatus.OK

    @property
    def failed(self) -> bool:
        return self.status is EncryptStatus.FAILED


class FieldCipher:
    """AES-256-GCM codec for individual text fields."""

    def __init__(self, key: bytes):
        if len(key) != ENCRYPTION_KEY_BYTES:
            raise ValueError(f"Encryption key must be {ENCRYPTION_KEY_BYTES} bytes (got {len(key)}).")
        self._aesgcm = AESGCM(key)

    @classmethod
    def from_base64(cls, value: str) -> "FieldCipher":
        try:
            key = base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError("Encryption key must be base64-encoded.") from e
        return cls(key)

    @classmethod
    def from_settings(cls, settings: Settings) -> "FieldCipher":
        return cls(settings.encryption_key_bytes)

    def encrypt_field(self, plaintext: Any) -> EncryptResult:
        """
        Encrypt a single field value.

        None and "" yield EMPTY (the field is not set). Other non-string
        values are coerced with str(). A fresh random IV is drawn per call.
        """
        if plaintext is None or plaintext == "":
            return EncryptResult(status=EncryptStatus.EMPTY)

        text = plaintext if isinstance(plaintext, str) else str(plaintext)
        try:
            iv = os.urandom(IV_LENGTH)
            sealed = self._aesgcm.encrypt(iv, text.encode("utf-8"), None)
        except Exception as e:
            logger.error(f"Encryption failed: {e.__class__.__name__}")
            return EncryptResult(status=EncryptStatus.FAILED, reason=str(e) or e.__class__.__name__)

        # AESGCM appends the tag to the ciphertext; the stored layout puts it first.
        ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
        return EncryptResult(status=EncryptStatus.OK, value=iv.hex() + tag.hex() + ciphertext.hex())

    def encrypt(self, plaintext: Any) -> Optional[str]:
        """Encrypt and return the encoded field, or None when empty or on failure."""
        return self.encrypt_field(plaintext).value

    def decrypt(self, encoded: Optional[str]) -> str:
        """
        Decrypt an encoded field.

        Raises DecryptionError for empty, short, non-hex or tampered input.
        """
        if not encoded or not isinstance(encoded, str) or len(encoded) < MIN_ENCODED_LENGTH:
            raise DecryptionError("Decryption failed: input is empty or too short.")

        iv_end = IV_LENGTH * 2
        tag_end = iv_end + TAG_LENGTH * 2
        try:
            iv = bytes.fromhex(encoded[:iv_end])
            tag = bytes.fromhex(encoded[iv_end:tag_end])
            ciphertext = bytes.fromhex(encoded[tag_end:])
            plaintext = self._aesgcm.decrypt(iv, ciphertext + tag, None)
            return plaintext.decode("utf-8")
        except (InvalidTag, ValueError) as e:
            raise DecryptionError("Decryption failed") from e


@lru_cache
def get_field_cipher() -> FieldCipher:
    """Process-wide cipher built from the configured key."""
    return FieldCipher.from_settings(get_settings())
