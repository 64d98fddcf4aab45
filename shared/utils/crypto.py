"""API credential encryption utilities using AES-256-GCM."""
import base64
import os
import secrets

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

NONCE_SIZE = 12


def generate_key_hex() -> str:
    """Generate a random hex-encoded 32-byte key."""
    return secrets.token_hex(32)


class SecretCipher:
    """Encrypts credential values before they reach the database."""

    def __init__(self, key_hex: str):
        if len(key_hex) != 64:
            raise ValueError("Encryption key must be 64 hex characters (32 bytes)")
        self._aesgcm = AESGCM(bytes.fromhex(key_hex))

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a credential value.

        Returns a base64-encoded string containing: nonce (12 bytes) + ciphertext
        """
        nonce = os.urandom(NONCE_SIZE)
        ciphertext = self._aesgcm.encrypt(nonce, plaintext.encode("utf-8"), None)
        return base64.b64encode(nonce + ciphertext).decode("utf-8")

    def decrypt(self, encrypted: str) -> str:
        """Decrypt a credential value.

        Expects a base64-encoded string containing: nonce (12 bytes) + ciphertext
        """
        data = base64.b64decode(encrypted)
        nonce = data[:NONCE_SIZE]
        ciphertext = data[NONCE_SIZE:]
        plaintext = self._aesgcm.decrypt(nonce, ciphertext, None)
        return plaintext.decode("utf-8")
