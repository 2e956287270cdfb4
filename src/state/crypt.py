"""
Passphrase envelope for staging files.

Layout: MAGIC | version (1 byte) | salt (16 bytes) | Fernet token

The Fernet key is derived from the passphrase with scrypt and the random
salt, so the same passphrase produces a different key for every write. A
wrong passphrase surfaces as `DecryptionFailedError`, which callers can tell
apart from "not encrypted" (`is_encrypted` is false) and "file missing".
"""

from __future__ import annotations

import base64
import os

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from .errors import DecryptionFailedError


MAGIC = b"CLOUDSTAGE_ENC"
ENVELOPE_VERSION = 1
SALT_SIZE = 16

# scrypt cost parameters (interactive-login strength)
_SCRYPT_N = 2**14
_SCRYPT_R = 8
_SCRYPT_P = 1

_HEADER_SIZE = len(MAGIC) + 1 + SALT_SIZE


def _derive_fernet(passphrase: str, salt: bytes) -> Fernet:
    kdf = Scrypt(salt=salt, length=32, n=_SCRYPT_N, r=_SCRYPT_R, p=_SCRYPT_P)
    key = kdf.derive(passphrase.encode("utf-8"))
    return Fernet(base64.urlsafe_b64encode(key))


def is_encrypted(data: bytes) -> bool:
    return data.startswith(MAGIC)


def encrypt(plaintext: bytes, passphrase: str) -> bytes:
    if not passphrase:
        raise ValueError("passphrase is required")
    salt = os.urandom(SALT_SIZE)
    token = _derive_fernet(passphrase, salt).encrypt(plaintext)
    return MAGIC + bytes([ENVELOPE_VERSION]) + salt + token


def decrypt(data: bytes, passphrase: str) -> bytes:
    """Open an envelope produced by `encrypt`.

    Raises:
    - DecryptionFailedError for a wrong passphrase, a truncated or tampered
      envelope, an unknown envelope version, or data that is not encrypted.
    """
    if not is_encrypted(data):
        raise DecryptionFailedError("data is not an encrypted staging envelope")
    if not passphrase:
        raise DecryptionFailedError("staging file is encrypted; a passphrase is required")
    if len(data) <= _HEADER_SIZE:
        raise DecryptionFailedError("encrypted staging envelope is truncated")

    version = data[len(MAGIC)]
    if version != ENVELOPE_VERSION:
        raise DecryptionFailedError(f"unsupported envelope version: {version}")

    salt = data[len(MAGIC) + 1 : _HEADER_SIZE]
    token = data[_HEADER_SIZE:]
    try:
        return _derive_fernet(passphrase, salt).decrypt(token)
    except InvalidToken as ex:
        raise DecryptionFailedError("failed to decrypt staging file: wrong passphrase or corrupted data") from ex


__all__ = ["MAGIC", "ENVELOPE_VERSION", "is_encrypted", "encrypt", "decrypt"]
