"""
Card-number encryption with a searchable blind index.

Two values are stored for every card number:

  number_ciphertext  AES-256-GCM over the number with a fresh random 96-bit
                     nonce per call, laid out as nonce || ciphertext || tag.
                     Encrypting the same number twice gives two different
                     blobs, so the column leaks nothing about equality.

  number_lookup      HMAC-SHA256 of the number under a second, independent
                     key. Deterministic, so it can carry a UNIQUE index and
                     answer "which card has this number?" with one indexed
                     lookup. It is never decrypted and never used as the
                     stored representation of the card.

The ciphertext column alone cannot be searched (random nonce) and a
deterministic nonce would break semantic security, hence the split.

Key handling:
  Both keys come from settings as base64. A wrong-length or reused key raises
  CipherKeyError while building the module-level ``card_cipher``, so the
  process refuses to start instead of failing on the first request.
"""

import base64
import binascii
import hashlib
import hmac
import os

import structlog
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from bankcards.config import settings
from bankcards.exceptions import CipherKeyError, DecryptionError, EncryptionError

logger = structlog.get_logger(__name__)

KEY_LENGTH = 32     # AES-256
NONCE_LENGTH = 12   # 96-bit nonce, the GCM recommendation
TAG_LENGTH = 16     # 128-bit authentication tag
MIN_LOOKUP_KEY_LENGTH = 32


def mask(plaintext: str) -> str:
    """
    Mask a card number for display: "**** **** **** 4242".

    Numbers shorter than four characters collapse to "****".
    """
    if len(plaintext) < 4:
        return "****"
    return "**** **** **** " + plaintext[-4:]


def decode_key(encoded: str, name: str) -> bytes:
    """Decode a base64 key from configuration, raising CipherKeyError on junk."""
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise CipherKeyError(f"{name} is not valid base64") from e


class CardCipher:
    """AEAD encryption of card numbers plus a keyed-MAC lookup value."""

    def __init__(self, encryption_key: bytes, lookup_key: bytes):
        if len(encryption_key) != KEY_LENGTH:
            raise CipherKeyError(
                f"Card encryption key must be {KEY_LENGTH} bytes, got {len(encryption_key)}"
            )
        if len(lookup_key) < MIN_LOOKUP_KEY_LENGTH:
            raise CipherKeyError(
                f"Card lookup key must be at least {MIN_LOOKUP_KEY_LENGTH} bytes, "
                f"got {len(lookup_key)}"
            )
        if hmac.compare_digest(encryption_key, lookup_key):
            raise CipherKeyError("Card lookup key must differ from the encryption key")

        self._aead = AESGCM(encryption_key)
        self._lookup_key = lookup_key

    @classmethod
    def from_settings(cls, config=settings) -> "CardCipher":
        return cls(
            encryption_key=decode_key(config.CARD_ENCRYPTION_KEY, "CARD_ENCRYPTION_KEY"),
            lookup_key=decode_key(config.CARD_LOOKUP_KEY, "CARD_LOOKUP_KEY"),
        )

    def encrypt(self, plaintext: str) -> bytes:
        """
        Encrypt a card number.

        Returns:
            nonce || ciphertext || tag, suitable for a LargeBinary column.

        Raises:
            EncryptionError: If the cipher fails. The plaintext is never
                included in the error.
        """
        nonce = os.urandom(NONCE_LENGTH)
        try:
            ciphertext = self._aead.encrypt(nonce, plaintext.encode("utf-8"), None)
        except (ValueError, TypeError, OverflowError) as e:
            logger.error("card_encrypt_failed", reason=type(e).__name__)
            raise EncryptionError() from e
        return nonce + ciphertext

    def decrypt(self, blob: bytes) -> str:
        """
        Decrypt a blob produced by :meth:`encrypt`.

        Raises:
            DecryptionError: On tampering, a wrong key, or a blob too short
                to hold a nonce and a tag.
        """
        if blob is None or len(blob) < NONCE_LENGTH + TAG_LENGTH:
            raise DecryptionError("Card ciphertext is malformed")

        nonce, ciphertext = blob[:NONCE_LENGTH], blob[NONCE_LENGTH:]
        try:
            plaintext = self._aead.decrypt(nonce, ciphertext, None)
        except InvalidTag as e:
            logger.error("card_decrypt_failed", reason="invalid_tag")
            raise DecryptionError() from e

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecryptionError("Card plaintext is not valid UTF-8") from e

    def lookup_key(self, plaintext: str) -> str:
        """Deterministic HMAC-SHA256 (hex) of a card number for equality search."""
        return hmac.new(
            self._lookup_key, plaintext.encode("utf-8"), hashlib.sha256
        ).hexdigest()

    @staticmethod
    def mask(plaintext: str) -> str:
        return mask(plaintext)


# Built at import time: a bad key stops the process before it serves anything.
card_cipher = CardCipher.from_settings()
