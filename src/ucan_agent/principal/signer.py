"""Signer — the agent's Ed25519 identity.

Secret key format
-----------------
The secret is a single multibase string (``base64pad``, prefix ``M``) of
68 bytes::

    varint(0x1300) || seed[32] || varint(0xed) || public_key[32]

which is the format produced by ``ucan-key ed`` and expected in the
``W3UP_PRIVATE_KEY`` environment variable. The embedded public key is
checked against the one derived from the seed so a corrupted token can
never sign under a DID it does not own.
"""
from __future__ import annotations

import copy

from ucan_agent.did.did_key import ED25519_PUB_PREFIX, public_key_to_did
from ucan_agent.did.identifier import parse_did
from ucan_agent.did.key_manager import KEY_SIZE, Ed25519KeyManager
from ucan_agent.errors import SigningError
from ucan_agent.ipld.encoding import encode_varint, from_multibase, to_multibase
from ucan_agent.principal.principal import Principal, Signature, Verifier

ED25519_PRIV_CODE: int = 0x1300
ED25519_PRIV_PREFIX: bytes = encode_varint(ED25519_PRIV_CODE)

_PUBLIC_OFFSET: int = len(ED25519_PRIV_PREFIX) + KEY_SIZE
_ENCODED_SIZE: int = _PUBLIC_OFFSET + len(ED25519_PUB_PREFIX) + KEY_SIZE


class Signer(Principal):
    """An Ed25519 keypair plus its ``did:key`` identifier.

    Construct with :meth:`parse` (from configuration) or :meth:`generate`.
    The seed never leaves the instance except through :meth:`format`.

    Example
    -------
    ::

        signer = Signer.generate()
        token = signer.format()
        assert Signer.parse(token).did() == signer.did()
    """

    def __init__(self, seed: bytes, key_manager: Ed25519KeyManager | None = None) -> None:
        self._key_manager = key_manager or Ed25519KeyManager()
        try:
            public_key = self._key_manager.public_key(seed)
        except ValueError as exc:
            raise SigningError(f"Invalid Ed25519 seed: {exc}") from exc
        super().__init__(public_key_to_did(public_key))
        self._seed = bytes(seed)
        self.public_key = public_key

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def parse(cls, secret: str) -> "Signer":
        """Parse a multibase-encoded secret key.

        Raises
        ------
        SigningError
            If the string is not valid multibase, has the wrong length,
            carries the wrong multicodec tags, or its public key does not
            match its seed.
        """
        try:
            data = from_multibase(secret.strip())
        except ValueError as exc:
            raise SigningError(f"Secret key is not valid multibase: {exc}") from exc
        return cls.decode(data)

    @classmethod
    def decode(cls, data: bytes) -> "Signer":
        """Build a signer from the 68-byte binary key form."""
        if len(data) != _ENCODED_SIZE:
            raise SigningError(
                f"Expected {_ENCODED_SIZE} bytes of key material, got {len(data)}"
            )
        if not data.startswith(ED25519_PRIV_PREFIX):
            raise SigningError("Secret key is not tagged as an Ed25519 private key")
        if data[_PUBLIC_OFFSET:_PUBLIC_OFFSET + len(ED25519_PUB_PREFIX)] != ED25519_PUB_PREFIX:
            raise SigningError("Secret key is missing the Ed25519 public key tag")
        seed = data[len(ED25519_PRIV_PREFIX):_PUBLIC_OFFSET]
        signer = cls(seed)
        if signer.public_key != data[_PUBLIC_OFFSET + len(ED25519_PUB_PREFIX):]:
            raise SigningError("Embedded public key does not match the private key")
        return signer

    @classmethod
    def generate(cls) -> "Signer":
        """Create a signer with a fresh random keypair."""
        manager = Ed25519KeyManager()
        seed, _ = manager.generate_keypair()
        return cls(seed, manager)

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def encode(self) -> bytes:
        """Return the 68-byte binary key form."""
        return ED25519_PRIV_PREFIX + self._seed + ED25519_PUB_PREFIX + self.public_key

    def format(self) -> str:
        """Return the multibase ``base64pad`` secret accepted by :meth:`parse`."""
        return to_multibase(self.encode(), "base64pad")

    # ------------------------------------------------------------------
    # Signing
    # ------------------------------------------------------------------

    def sign(self, data: bytes) -> Signature:
        """Sign *data* and return the Ed25519 :class:`Signature`."""
        return Signature(self._key_manager.sign(self._seed, data))

    def with_did(self, did: str) -> "Signer":
        """Return a signer for the same key that answers to *did*.

        A ``did:web`` service signs receipts this way.
        """
        signer = copy.copy(self)
        signer._did = parse_did(did)
        return signer

    def verifier(self) -> Verifier:
        """Return the public half of this identity."""
        return Verifier(self.did(), self.public_key)

    def verify(self, data: bytes, signature: Signature) -> bool:
        """Return True if *signature* over *data* was made by this key."""
        return self.verifier().verify(data, signature)

    def __repr__(self) -> str:
        return f"Signer({self.did()!r})"


__all__ = ["ED25519_PRIV_CODE", "Signer"]
