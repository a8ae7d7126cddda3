"""Generic DID parsing and the binary DID form used inside UCAN blocks.

Inside DAG-CBOR UCAN blocks a DID is carried as bytes rather than text:

- ``did:key`` DIDs are stored as the multicodec-prefixed public key.
- Any other DID is stored as ``varint(0x0d1d)`` followed by the UTF-8 DID.
"""
from __future__ import annotations

import re

from ucan_agent.did.did_key import (
    DID_KEY_PREFIX,
    ED25519_PUB_PREFIX,
    did_to_public_key,
    multicodec_to_public_key,
    public_key_to_did,
)
from ucan_agent.errors import ParseError
from ucan_agent.ipld.encoding import encode_varint

DID_CORE_CODE: int = 0x0D1D
DID_CORE_PREFIX: bytes = encode_varint(DID_CORE_CODE)

# did:<method>:<method-specific-id> (W3C DID Core, section 3.1)
_DID_PATTERN = re.compile(r"^did:(?P<method>[a-z0-9]+):(?P<id>[A-Za-z0-9._%:-]+)$")


def parse_did(value: str) -> str:
    """Validate *value* as a DID and return it unchanged.

    ``did:key`` DIDs are additionally decoded so a malformed key is caught
    here rather than at signature-verification time.

    Raises
    ------
    ParseError
        If *value* is not a syntactically valid DID.
    """
    if not isinstance(value, str) or not _DID_PATTERN.match(value):
        raise ParseError(f"Invalid DID: {value!r}. Expected did:<method>:<identifier>")
    if value.startswith(DID_KEY_PREFIX):
        did_to_public_key(value)
    return value


def did_method(did: str) -> str:
    """Return the method name of a parsed DID (``"key"`` for ``did:key:...``)."""
    match = _DID_PATTERN.match(did)
    if match is None:
        raise ParseError(f"Invalid DID: {did!r}")
    return match.group("method")


def did_to_bytes(did: str) -> bytes:
    """Encode a DID in its binary UCAN form."""
    if did.startswith(DID_KEY_PREFIX):
        return ED25519_PUB_PREFIX + did_to_public_key(did)
    return DID_CORE_PREFIX + parse_did(did).encode("utf-8")


def did_from_bytes(data: bytes) -> str:
    """Decode a DID from its binary UCAN form.

    Raises
    ------
    ParseError
        If the bytes carry neither the Ed25519 nor the DID-core prefix, or
        the embedded DID is malformed.
    """
    if data.startswith(DID_CORE_PREFIX):
        try:
            text = data[len(DID_CORE_PREFIX):].decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ParseError(f"DID bytes are not valid UTF-8: {exc}") from exc
        return parse_did(text)
    return public_key_to_did(multicodec_to_public_key(data, "DID bytes"))


__all__ = [
    "DID_CORE_CODE",
    "did_from_bytes",
    "did_method",
    "did_to_bytes",
    "parse_did",
]
