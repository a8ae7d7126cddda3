"""W3C ``did:key`` method for Ed25519 public keys.

Implements the ``did:key`` DID method as specified in:
https://w3c-ccg.github.io/did-method-key/

did:key encoding
----------------
1. Take the Ed25519 public key (32 raw bytes).
2. Prepend the Ed25519 multicodec prefix: ``0xed 0x01`` (varint of ``0xed``).
3. Multibase-encode the 34-byte result as base58btc (``z`` prefix).
4. Assemble: ``did:key:z<base58btc-encoded>``.

The resulting DID is self-describing: the public key is recoverable from
the DID string alone, without any external registry.
"""
from __future__ import annotations

from ucan_agent.did.key_manager import KEY_SIZE
from ucan_agent.errors import ParseError
from ucan_agent.ipld.encoding import encode_varint, from_multibase, to_multibase

# ---------------------------------------------------------------------------
# Multicodec prefix for Ed25519 public keys (varint-encoded 0xed)
# ---------------------------------------------------------------------------

ED25519_PUB_CODE: int = 0xED
ED25519_PUB_PREFIX: bytes = encode_varint(ED25519_PUB_CODE)

DID_KEY_PREFIX: str = "did:key:"


def public_key_to_did(public_key_bytes: bytes) -> str:
    """Encode a raw Ed25519 public key as a ``did:key`` DID.

    Parameters
    ----------
    public_key_bytes:
        The 32-byte raw Ed25519 public key.

    Returns
    -------
    str
        A ``did:key:z<base58btc>`` string.
    """
    return DID_KEY_PREFIX + to_multibase(ED25519_PUB_PREFIX + public_key_bytes, "base58btc")


def did_to_public_key(did: str) -> bytes:
    """Decode the raw Ed25519 public key from a ``did:key`` DID.

    Raises
    ------
    ParseError
        If the DID is not in ``did:key:z<encoded>`` format, the multibase
        payload is not valid base58btc, the multicodec prefix is not the
        Ed25519 prefix, or the key is not 32 bytes.
    """
    validate_did_key_format(did)
    try:
        decoded = from_multibase(did[len(DID_KEY_PREFIX):])
    except ValueError as exc:
        raise ParseError(f"Invalid base58btc payload in DID {did!r}: {exc}") from exc
    return multicodec_to_public_key(decoded, did)


def multicodec_to_public_key(data: bytes, label: str = "") -> bytes:
    """Strip the Ed25519 multicodec prefix from *data* and return the raw key."""
    if not data.startswith(ED25519_PUB_PREFIX):
        prefix_hex = data[:2].hex()
        raise ParseError(
            f"Unsupported multicodec prefix 0x{prefix_hex} in {label or 'key'!r}. "
            "Only Ed25519 (0xed01) keys are supported."
        )
    public_bytes = data[len(ED25519_PUB_PREFIX):]
    if len(public_bytes) != KEY_SIZE:
        raise ParseError(
            f"Ed25519 public key in {label or 'key'!r} has {len(public_bytes)} bytes, "
            f"expected {KEY_SIZE}."
        )
    return public_bytes


def validate_did_key_format(did: str) -> None:
    """Raise :class:`ParseError` if *did* is not a ``did:key:z...`` string.

    Parameters
    ----------
    did:
        The DID string to validate.
    """
    if not did.startswith(DID_KEY_PREFIX + "z"):
        raise ParseError(
            f"Invalid did:key format: {did!r}. "
            "Expected format: did:key:z<base58btc-encoded-public-key>"
        )
    if len(did) == len(DID_KEY_PREFIX) + 1:
        raise ParseError(f"Invalid did:key format: {did!r}. The encoded key portion is empty.")


__all__ = [
    "DID_KEY_PREFIX",
    "ED25519_PUB_CODE",
    "ED25519_PUB_PREFIX",
    "did_to_public_key",
    "multicodec_to_public_key",
    "public_key_to_did",
    "validate_did_key_format",
]
