"""
Message text encryption.

Message bodies are stored as ``nonceHex:tagHex:cipherHex`` envelopes produced
with AES-256-GCM. The key is derived once per process from
``CHAT_ENCRYPTION_SECRET`` with scrypt and a fixed application salt.
"""

import logging
import os
import re
import threading
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

logger = logging.getLogger(__name__)

KEY_SALT = b"taskhub-chat-salt"
KEY_LENGTH = 32
NONCE_LENGTH = 12
TAG_LENGTH = 16

# scrypt cost parameters
SCRYPT_N = 2 ** 14
SCRYPT_R = 8
SCRYPT_P = 1

# Unpaired UTF-16 halves, e.g. from a JSON "\ud800" escape
LONE_SURROGATE = re.compile("[\ud800-\udfff]")


class EncryptionError(Exception):
    """Base class for envelope failures; scoped to a single message."""


class MalformedEnvelope(EncryptionError):
    pass


class AuthenticationFailed(EncryptionError):
    """The envelope does not authenticate under the current key."""


_key: Optional[bytes] = None
_key_lock = threading.Lock()


def _derive_key(secret: str) -> bytes:
    kdf = Scrypt(salt=KEY_SALT, length=KEY_LENGTH, n=SCRYPT_N, r=SCRYPT_R, p=SCRYPT_P)
    return kdf.derive(secret.encode('utf-8'))


def get_key() -> bytes:
    """Return the process-wide message key, deriving it on first use."""
    global _key
    if _key is None:
        with _key_lock:
            if _key is None:
                secret = getattr(settings, 'CHAT_ENCRYPTION_SECRET', '')
                if not secret:
                    logger.critical("CHAT_ENCRYPTION_SECRET is not set; messages cannot be encrypted")
                    raise ImproperlyConfigured("CHAT_ENCRYPTION_SECRET is not set.")
                _key = _derive_key(secret)
                logger.info("Derived chat encryption key")
    return _key


def to_wellformed_text(text: Optional[str]) -> Optional[str]:
    """Replace unpaired surrogates with U+FFFD so the text can be encoded as UTF-8."""
    if not text or not isinstance(text, str):
        return text
    return LONE_SURROGATE.sub("\ufffd", text)


def encrypt_text(plaintext: Optional[str]) -> Optional[str]:
    """
    Encrypt message text into an envelope.

    Returns None for empty or missing text so the caller can store an
    attachment-only message.
    """
    if not plaintext or not isinstance(plaintext, str):
        return None

    nonce = os.urandom(NONCE_LENGTH)
    sealed = AESGCM(get_key()).encrypt(nonce, to_wellformed_text(plaintext).encode('utf-8'), None)
    ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]

    return f"{nonce.hex()}:{tag.hex()}:{ciphertext.hex()}"


def decrypt_text(envelope: Optional[str]) -> Optional[str]:
    """
    Decrypt an envelope produced by :func:`encrypt_text`.

    Raises:
        MalformedEnvelope: If the envelope does not have three hex fields of the expected sizes
        AuthenticationFailed: If the authentication tag does not verify
    """
    if not envelope:
        return None

    parts = envelope.split(":")
    if len(parts) != 3:
        raise MalformedEnvelope(f"Expected 3 envelope fields, got {len(parts)}")

    try:
        nonce, tag, ciphertext = (bytes.fromhex(part) for part in parts)
    except ValueError as e:
        raise MalformedEnvelope(f"Envelope is not valid hex: {e}") from e

    if len(nonce) != NONCE_LENGTH or len(tag) != TAG_LENGTH:
        raise MalformedEnvelope("Envelope nonce or tag has the wrong length")

    try:
        plaintext = AESGCM(get_key()).decrypt(nonce, ciphertext + tag, None)
    except InvalidTag as e:
        raise AuthenticationFailed("Envelope failed authentication") from e

    try:
        return plaintext.decode('utf-8')
    except UnicodeDecodeError as e:
        raise MalformedEnvelope("Decrypted text is not UTF-8") from e
