"""
Credential cipher — password-based AES-256-CBC, OpenSSL compatible.

Blobs are byte-for-byte what ``openssl enc -aes-256-cbc -salt -pbkdf2``
produces, so stores written by the older shell tooling stay readable and
a store can be inspected by hand::

    openssl enc -d -aes-256-cbc -pbkdf2 -in api_keys.enc

Layout:

    b"Salted__" | salt(8) | AES-256-CBC(PKCS7(plaintext))

Key and IV come from one PBKDF2-HMAC-SHA256 derivation (10 000
iterations, 48 bytes: 32 key + 16 IV).  A fresh salt is drawn on every
write.  CBC carries no MAC: a wrong password is detected through the
padding check and the JSON decode that follows.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping

from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from devstrap.core.errors import DecryptionError

logger = logging.getLogger(__name__)

# ── Crypto constants ─────────────────────────────────────────────────
MAGIC = b"Salted__"
SALT_BYTES = 8
KEY_BYTES = 32
IV_BYTES = 16
BLOCK_BITS = 128
KDF_ITERATIONS = 10_000   # openssl enc -pbkdf2 default


def _derive_key_iv(password: str, salt: bytes, iterations: int = KDF_ITERATIONS) -> tuple[bytes, bytes]:
    """PBKDF2-SHA256 → (key, iv)."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_BYTES + IV_BYTES,
        salt=salt,
        iterations=iterations,
    )
    material = kdf.derive(password.encode("utf-8"))
    return material[:KEY_BYTES], material[KEY_BYTES:]


def encrypt_bytes(plaintext: bytes, password: str) -> bytes:
    """Encrypt *plaintext* under *password* with a fresh random salt."""
    salt = os.urandom(SALT_BYTES)
    key, iv = _derive_key_iv(password, salt)

    padder = padding.PKCS7(BLOCK_BITS).padder()
    padded = padder.update(plaintext) + padder.finalize()

    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    return MAGIC + salt + encryptor.update(padded) + encryptor.finalize()


def decrypt_bytes(blob: bytes, password: str) -> bytes:
    """Inverse of :func:`encrypt_bytes`.

    Raises:
        DecryptionError: Bad header, truncated blob, or bad padding
            (almost always a wrong password).
    """
    header = len(MAGIC) + SALT_BYTES
    body = blob[header:]
    if not blob.startswith(MAGIC) or not body or len(body) % (BLOCK_BITS // 8):
        raise DecryptionError("Not a salted AES-256-CBC ciphertext (corrupt file?)")

    salt = blob[len(MAGIC):header]
    key, iv = _derive_key_iv(password, salt)

    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    padded = decryptor.update(body) + decryptor.finalize()

    unpadder = padding.PKCS7(BLOCK_BITS).unpadder()
    try:
        return unpadder.update(padded) + unpadder.finalize()
    except ValueError as e:
        raise DecryptionError("Decryption failed. Wrong password?") from e


def encrypt_mapping(mapping: Mapping[str, str], password: str) -> bytes:
    """Serialize *mapping* as JSON and encrypt it."""
    payload = json.dumps(dict(mapping), indent=2, ensure_ascii=False) + "\n"
    return encrypt_bytes(payload.encode("utf-8"), password)


def decrypt_mapping(blob: bytes, password: str) -> dict[str, str]:
    """Decrypt a blob back into a ``str → str`` mapping.

    Raises:
        DecryptionError: Wrong password, corrupt file, or a plaintext
            that is not a JSON object.
    """
    plaintext = decrypt_bytes(blob, password)
    try:
        data = json.loads(plaintext.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DecryptionError("Decryption failed. Wrong password?") from e

    if not isinstance(data, dict):
        raise DecryptionError(f"Credential store holds {type(data).__name__}, expected an object")
    return {str(k): str(v) for k, v in data.items()}
