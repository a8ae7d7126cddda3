"""Ed25519KeyManager — Ed25519 key derivation, signing, and verification.

A thin wrapper around the ``cryptography`` package's Ed25519 primitives.
All key material is handled as raw 32-byte strings so the signer and
verifier types can store keys without depending on ``cryptography``'s
internal classes.
"""
from __future__ import annotations

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)

KEY_SIZE: int = 32
SIGNATURE_SIZE: int = 64


class Ed25519KeyManager:
    """Ed25519 key management: generate, derive, sign, and verify.

    Example
    -------
    ::

        manager = Ed25519KeyManager()
        seed, public_bytes = manager.generate_keypair()
        signature = manager.sign(seed, b"hello world")
        assert manager.verify(public_bytes, signature, b"hello world")
    """

    def generate_keypair(self) -> tuple[bytes, bytes]:
        """Generate a new Ed25519 keypair.

        Returns
        -------
        tuple[bytes, bytes]
            A ``(seed, public_key_bytes)`` pair. Both are 32-byte raw
            representations.
        """
        private_key = Ed25519PrivateKey.generate()
        seed = private_key.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption())
        return seed, self.public_key(seed)

    def public_key(self, seed: bytes) -> bytes:
        """Derive the raw public key for a 32-byte private seed.

        Raises
        ------
        ValueError
            If *seed* is not exactly 32 bytes.
        """
        private_key = Ed25519PrivateKey.from_private_bytes(seed)
        return private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)

    def sign(self, seed: bytes, data: bytes) -> bytes:
        """Sign data with an Ed25519 private seed and return the 64-byte signature."""
        private_key = Ed25519PrivateKey.from_private_bytes(seed)
        return private_key.sign(data)

    def verify(self, public_key_bytes: bytes, signature: bytes, data: bytes) -> bool:
        """Verify an Ed25519 signature.

        Returns ``False`` for a bad signature and for a public key that is
        not a valid 32-byte Ed25519 point.
        """
        try:
            public_key = Ed25519PublicKey.from_public_bytes(public_key_bytes)
        except ValueError:
            return False
        try:
            public_key.verify(signature, data)
            return True
        except InvalidSignature:
            return False


__all__ = ["Ed25519KeyManager", "KEY_SIZE", "SIGNATURE_SIZE"]
