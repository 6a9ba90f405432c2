# secure_mail/crypto/keys.py
"""
Where the config encryption key comes from.

Resolution order (first match wins):
  1. a key passed in explicitly
  2. SECURE_MAIL_KEY            base64 of 32 raw bytes
  3. SECURE_MAIL_PASSPHRASE     Scrypt(passphrase, fixed app salt)
  4. the built-in key           same bytes in every installation

The built-in key only obscures the password on disk: anyone holding a copy
of the program can decrypt it. Prefer 2 or 3.
"""

from __future__ import annotations

import base64
import binascii
import enum
import os
from dataclasses import dataclass

from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from ..app_config import (
    AES_KEY_BYTES,
    ENV_KEY,
    ENV_PASSPHRASE,
    SCRYPT_N,
    SCRYPT_P,
    SCRYPT_R,
    SCRYPT_SALT,
)
from ..errors import KeyMaterialError

BUILTIN_KEY = bytes.fromhex(
    "5c1e8f3a92d04b7e6a1f0c8d4e2b97a3"
    "f06d18c4b25e7a9031dc4f86e2a75b0e"
)


class KeySource(enum.Enum):
    EXPLICIT = "explicit"
    ENV_KEY = "environment key"
    PASSPHRASE = "passphrase"
    BUILTIN = "built-in"


@dataclass(frozen=True)
class KeyMaterial:
    key: bytes
    source: KeySource


def derive_key(passphrase: str, salt: bytes = SCRYPT_SALT, n: int = SCRYPT_N) -> bytes:
    kdf = Scrypt(salt=salt, length=AES_KEY_BYTES, n=n, r=SCRYPT_R, p=SCRYPT_P)
    return kdf.derive(passphrase.encode("utf-8"))


def _decode_env_key(value: str) -> bytes:
    try:
        key = base64.b64decode(value.strip(), validate=True)
    except (binascii.Error, ValueError) as e:
        raise KeyMaterialError(f"{ENV_KEY} is not valid base64: {e}") from e
    if len(key) != AES_KEY_BYTES:
        raise KeyMaterialError(f"{ENV_KEY} must decode to {AES_KEY_BYTES} bytes, got {len(key)}")
    return key


def resolve_key(explicit: bytes | None = None, environ=None) -> KeyMaterial:
    environ = os.environ if environ is None else environ
    if explicit is not None:
        return KeyMaterial(bytes(explicit), KeySource.EXPLICIT)
    if environ.get(ENV_KEY):
        return KeyMaterial(_decode_env_key(environ[ENV_KEY]), KeySource.ENV_KEY)
    if environ.get(ENV_PASSPHRASE):
        return KeyMaterial(derive_key(environ[ENV_PASSPHRASE]), KeySource.PASSPHRASE)
    return KeyMaterial(BUILTIN_KEY, KeySource.BUILTIN)
