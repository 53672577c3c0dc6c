"""
Canvas password hashing.

Hashes are stored as "pbkdf2_sha256$<iterations>$<salt hex>$<digest hex>".
"""

from __future__ import annotations
import hashlib
import hmac
import os

from .config import PASSWORD_ITERATIONS

ALGORITHM = "pbkdf2_sha256"


class PasswordHasher:
    """PBKDF2-SHA256 password hashing with per-hash salt."""

    def __init__(self, iterations: int = PASSWORD_ITERATIONS):
        self.iterations = iterations

    def hash(self, password: str) -> str:
        salt = os.urandom(16)
        digest = self._derive(password, salt, self.iterations)
        return f"{ALGORITHM}${self.iterations}${salt.hex()}${digest.hex()}"

    def verify(self, password: str, encoded: str) -> bool:
        try:
            algorithm, iterations, salt_hex, digest_hex = encoded.split("$")
            salt = bytes.fromhex(salt_hex)
            expected = bytes.fromhex(digest_hex)
            rounds = int(iterations)
        except ValueError:
            return False
        if algorithm != ALGORITHM:
            return False
        return hmac.compare_digest(self._derive(password, salt, rounds), expected)

    @staticmethod
    def _derive(password: str, salt: bytes, iterations: int) -> bytes:
        return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
