"""
Encrypted, process-local key/value cache.

Values are only held in decrypted form transiently while being set or read;
anything inspecting the process heap sees ciphertext. The key and IV are
generated per instance and never leave it, so a cache is unrecoverable once
its owner is gone.

Logging is deliberately absent from this module so no record can leak
insight into stored values.
"""

import os
from typing import Any, Optional

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from schemas.values import CacheEntry


KEY_BYTES = 32  # AES-256
IV_BYTES = 16


class SecureCache:
    """
    Type-preserving key/value store that keeps values encrypted at rest in memory.

    Usage:
        cache = SecureCache()
        cache.set("DB_PASSWORD", "hunter2")
        password = cache.get("DB_PASSWORD")
    """

    def __init__(self):
        self._cipher = Cipher(algorithms.AES(os.urandom(KEY_BYTES)), modes.CBC(os.urandom(IV_BYTES)))
        self._values: dict[str, bytes] = {}

    def set(self, name: str, value: Any) -> None:
        """
        Store a value, or clear it.

        Args:
            name: Key to store under
            value: Value to store; None removes the key, values that cannot
                be represented are ignored
        """
        if value is None:
            self._values.pop(name, None)
            return

        entry = CacheEntry.of(value)
        if entry is None:
            return

        try:
            plaintext = entry.model_dump_json().encode("utf-8")
        except ValueError:
            # Objects holding values with no JSON form are not storable
            return
        self._values[name] = self._hide(plaintext)

    def get(self, name: str) -> Optional[Any]:
        """
        Read a value back as the type it was stored with.

        Args:
            name: Key to read

        Returns:
            Stored value, or None if nothing is stored under the key
        """
        ciphertext = self._values.get(name)
        if ciphertext is None:
            return None
        return CacheEntry.model_validate_json(self._show(ciphertext)).unwrap()

    def delete(self, name: str) -> None:
        """Remove a key if present."""
        self._values.pop(name, None)

    def clear(self) -> None:
        """Remove every key."""
        self._values.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __len__(self) -> int:
        return len(self._values)

    def _hide(self, plaintext: bytes) -> bytes:
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext) + padder.finalize()
        encryptor = self._cipher.encryptor()
        return encryptor.update(padded) + encryptor.finalize()

    def _show(self, ciphertext: bytes) -> bytes:
        decryptor = self._cipher.decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        return unpadder.update(padded) + unpadder.finalize()
