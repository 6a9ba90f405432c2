#Authenticated Encryption with Associated Data
import os
from typing import Tuple

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..app_config import AES_KEY_BYTES, GCM_NONCE_BYTES, GCM_TAG_BYTES
from ..errors import AuthenticationFailure, KeyMaterialError

NONCE_SIZE = GCM_NONCE_BYTES  # 96-bit recommended for AES-GCM
KEY_SIZE = AES_KEY_BYTES      # 256-bit key


def gen_nonce() -> bytes:
    """Generate a fresh random 96-bit nonce."""
    return os.urandom(NONCE_SIZE)


class Cipher:
    """
    AES-256-GCM over one fixed key.

    Every encrypt() call draws a new random nonce; the caller has to store
    it next to the ciphertext. decrypt() is all-or-nothing: either the tag
    verifies and the full plaintext comes back, or AuthenticationFailure.
    """

    def __init__(self, key: bytes):
        if not isinstance(key, (bytes, bytearray)) or len(key) != KEY_SIZE:
            raise KeyMaterialError(f"AES-256-GCM key must be {KEY_SIZE} bytes")
        self._aesgcm = AESGCM(bytes(key))

    def encrypt(self, plaintext: str | bytes) -> Tuple[bytes, bytes]:
        """
        Encrypt `plaintext`.
        Returns: (ciphertext_with_tag, nonce)
        """
        if isinstance(plaintext, str):
            plaintext = plaintext.encode("utf-8")
        nonce = gen_nonce()
        ct = self._aesgcm.encrypt(nonce, plaintext, None)
        return ct, nonce

    def decrypt(self, ciphertext: bytes, nonce: bytes) -> bytes:
        if len(nonce) != NONCE_SIZE or len(ciphertext) < GCM_TAG_BYTES:
            raise AuthenticationFailure()
        try:
            return self._aesgcm.decrypt(bytes(nonce), bytes(ciphertext), None)
        except InvalidTag as e:
            raise AuthenticationFailure() from e

    def decrypt_text(self, ciphertext: bytes, nonce: bytes) -> str:
        pt = self.decrypt(ciphertext, nonce)
        try:
            return pt.decode("utf-8")
        except UnicodeDecodeError as e:
            raise AuthenticationFailure("decrypted password is not valid UTF-8") from e
