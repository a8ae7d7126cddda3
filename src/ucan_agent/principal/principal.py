"""Principals, verifiers, and signatures.

A :class:`Principal` is any party identified by a DID. A :class:`Verifier`
is a principal that can also check Ed25519 signatures, either because its
DID is a ``did:key`` or because a non-key DID (for example a ``did:web``
service) has been bound to a key with :meth:`Verifier.with_did`.
"""
from __future__ import annotations

from ucan_agent.did.did_key import DID_KEY_PREFIX, did_to_public_key
from ucan_agent.did.identifier import parse_did
from ucan_agent.did.key_manager import SIGNATURE_SIZE, Ed25519KeyManager
from ucan_agent.errors import DecodeError
from ucan_agent.ipld.encoding import decode_varint, encode_varint

# varsig header for Ed25519 signatures
ED25519_SIGNATURE_CODE: int = 0xD0ED

_key_manager = Ed25519KeyManager()


class Signature:
    """An Ed25519 signature with its varsig encoding.

    The binary form is ``varint(0xd0ed) || varint(len) || raw``.
    """

    __slots__ = ("raw",)

    def __init__(self, raw: bytes) -> None:
        self.raw = bytes(raw)

    def encode(self) -> bytes:
        """Return the varsig-prefixed bytes stored in UCAN and receipt blocks."""
        return encode_varint(ED25519_SIGNATURE_CODE) + encode_varint(len(self.raw)) + self.raw

    @classmethod
    def decode(cls, data: bytes) -> "Signature":
        """Parse varsig-prefixed signature bytes.

        Raises
        ------
        DecodeError
            If the header is not an Ed25519 varsig header or the length
            does not match.
        """
        try:
            code, offset = decode_varint(data)
            size, offset = decode_varint(data, offset)
        except ValueError as exc:
            raise DecodeError(f"Malformed signature header: {exc}") from exc
        if code != ED25519_SIGNATURE_CODE:
            raise DecodeError(f"Unsupported signature algorithm 0x{code:x}")
        raw = bytes(data[offset:])
        if size != SIGNATURE_SIZE or len(raw) != size:
            raise DecodeError(
                f"Ed25519 signature must be {SIGNATURE_SIZE} bytes, got {len(raw)}"
            )
        return cls(raw)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Signature) and other.raw == self.raw

    def __hash__(self) -> int:
        return hash(self.raw)

    def __repr__(self) -> str:
        return f"Signature({self.raw[:8].hex()}...)"


class Principal:
    """A party identified by a DID.

    Parameters
    ----------
    did:
        A syntactically valid DID string.
    """

    def __init__(self, did: str) -> None:
        self._did = did

    def did(self) -> str:
        """Return the DID string of this principal."""
        return self._did

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Principal) and other.did() == self._did

    def __hash__(self) -> int:
        return hash(self._did)

    def __str__(self) -> str:
        return self._did

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._did!r})"


class Verifier(Principal):
    """A principal that can verify Ed25519 signatures.

    Parameters
    ----------
    did:
        The DID this verifier answers to. Usually the ``did:key`` of
        *public_key*, but may be any DID bound to the key.
    public_key:
        The 32-byte raw Ed25519 public key.
    """

    def __init__(self, did: str, public_key: bytes) -> None:
        super().__init__(did)
        self.public_key = public_key

    @classmethod
    def from_did_key(cls, did: str) -> "Verifier":
        """Build a verifier from a ``did:key`` DID."""
        return cls(did, did_to_public_key(did))

    def with_did(self, did: str) -> "Verifier":
        """Return a verifier for the same key that answers to *did*.

        Used for services identified by ``did:web`` that sign with a
        ``did:key``.
        """
        return Verifier(parse_did(did), self.public_key)

    def verify(self, data: bytes, signature: Signature) -> bool:
        """Return True if *signature* over *data* was made by this key."""
        return _key_manager.verify(self.public_key, signature.raw, data)


def parse(did: str) -> Principal:
    """Parse a DID string into a :class:`Principal`.

    ``did:key`` DIDs produce a :class:`Verifier`; other methods produce a
    plain :class:`Principal`.

    Raises
    ------
    ParseError
        If the DID is malformed.
    """
    parse_did(did)
    if did.startswith(DID_KEY_PREFIX):
        return Verifier.from_did_key(did)
    return Principal(did)


__all__ = ["ED25519_SIGNATURE_CODE", "Principal", "Signature", "Verifier", "parse"]
