# src/flatshare_chat/services/encryption.py
"""Key derivation and authenticated encryption for chat messages."""

from __future__ import annotations

import hashlib
import secrets
from collections.abc import Sequence
from dataclasses import dataclass

from cryptography.exceptions import InvalidTag, UnsupportedAlgorithm
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from flatshare_chat.services.errors import (
    DecryptionFailure,
    EncryptionFailure,
    InvalidParticipants,
)

KEY_LENGTH_BYTES = 32
IV_LENGTH_BYTES = 16
PARTICIPANT_SEPARATOR = "-"

__all__ = [
    "EncryptedPayload",
    "EncryptionService",
    "IV_LENGTH_BYTES",
    "KEY_LENGTH_BYTES",
]


@dataclass(frozen=True)
class EncryptedPayload:
    """Hex-encoded output of a single AES-GCM encryption."""

    ciphertext: str
    iv: str
    auth_tag: str


class EncryptionService:
    """AES-256-GCM encryption with keys derived from the participant pair.

    The service knows nothing about chats or users beyond the two
    identifiers it is handed, so it can be exercised in isolation.
    """

    @staticmethod
    def derive_chat_key(participant_ids: Sequence[str]) -> bytes:
        """Derive the symmetric key shared by a pair of participants.

        Args:
            participant_ids: The two participant identifiers, in any order.

        Returns:
            A 32-byte key, identical for both orderings of the pair.

        Raises:
            InvalidParticipants: Unless exactly two distinct, non-blank IDs are given.
        """
        ids = list(participant_ids)
        if len(ids) != 2:
            raise InvalidParticipants("Exactly two participants are required")
        if any(not isinstance(pid, str) or not pid.strip() for pid in ids):
            raise InvalidParticipants("Participant IDs must be non-empty strings")
        if ids[0] == ids[1]:
            raise InvalidParticipants("Participants must be two different users")

        combined = PARTICIPANT_SEPARATOR.join(sorted(ids))
        return hashlib.sha256(combined.encode("utf-8")).digest()

    @staticmethod
    def key_fingerprint(key: bytes) -> str:
        """Return a non-secret hex fingerprint identifying a derived key."""
        return hashlib.sha256(key).hexdigest()

    @staticmethod
    def encrypt(plaintext: str, key: bytes) -> EncryptedPayload:
        """Encrypt UTF-8 text under a fresh random IV.

        Args:
            plaintext: Message text; may be empty.
            key: 32-byte key from :meth:`derive_chat_key`.

        Returns:
            Ciphertext, IV and authentication tag as hex strings.

        Raises:
            EncryptionFailure: If the cipher rejects the key or input.
        """
        iv = secrets.token_bytes(IV_LENGTH_BYTES)
        try:
            encryptor = Cipher(algorithms.AES(key), modes.GCM(iv)).encryptor()
            ciphertext = encryptor.update(plaintext.encode("utf-8")) + encryptor.finalize()
            tag = encryptor.tag
        except (ValueError, TypeError, AttributeError, UnsupportedAlgorithm) as err:
            raise EncryptionFailure("Failed to encrypt message") from err

        return EncryptedPayload(
            ciphertext=ciphertext.hex(),
            iv=iv.hex(),
            auth_tag=tag.hex(),
        )

    @staticmethod
    def decrypt(payload: EncryptedPayload, key: bytes) -> str:
        """Authenticate and decrypt a payload produced by :meth:`encrypt`.

        Raises:
            DecryptionFailure: On tag mismatch, malformed hex, bad lengths
                or a plaintext that is not valid UTF-8.
        """
        try:
            ciphertext = bytes.fromhex(payload.ciphertext)
            iv = bytes.fromhex(payload.iv)
            tag = bytes.fromhex(payload.auth_tag)
            decryptor = Cipher(algorithms.AES(key), modes.GCM(iv, tag)).decryptor()
            plaintext = decryptor.update(ciphertext) + decryptor.finalize()
            return plaintext.decode("utf-8")
        except (InvalidTag, ValueError, TypeError, UnsupportedAlgorithm) as err:
            raise DecryptionFailure("Failed to decrypt message") from err
