"""ucan_agent.did — DID parsing, ``did:key`` encoding, and Ed25519 key handling.

Submodules
----------
did_key
    ``did:key`` <-> raw Ed25519 public key conversion.
identifier
    Generic DID syntax checks and the binary DID form used in UCAN blocks.
key_manager
    Ed25519 key generation, signing, and verification over raw bytes.
"""
from __future__ import annotations

from ucan_agent.did.did_key import did_to_public_key, public_key_to_did
from ucan_agent.did.identifier import did_from_bytes, did_method, did_to_bytes, parse_did
from ucan_agent.did.key_manager import Ed25519KeyManager

__all__ = [
    "Ed25519KeyManager",
    "did_from_bytes",
    "did_method",
    "did_to_bytes",
    "did_to_public_key",
    "parse_did",
    "public_key_to_did",
]
