"""Tests for did:key encoding, generic DID parsing, and the Ed25519 key manager.

Covers:
- Ed25519KeyManager: generate, derive, sign, verify, wrong-data-fails
- did:key: encode, decode, round-trip, format validation
- Binary DID form used inside UCAN blocks
"""
from __future__ import annotations

import pytest

from ucan_agent.did.did_key import (
    DID_KEY_PREFIX,
    ED25519_PUB_PREFIX,
    did_to_public_key,
    public_key_to_did,
    validate_did_key_format,
)
from ucan_agent.did.identifier import (
    DID_CORE_CODE,
    did_from_bytes,
    did_method,
    did_to_bytes,
    parse_did,
)
from ucan_agent.did.key_manager import Ed25519KeyManager
from ucan_agent.errors import ParseError
from ucan_agent.ipld.encoding import encode_varint, to_multibase


# ---------------------------------------------------------------------------
# Ed25519KeyManager tests
# ---------------------------------------------------------------------------


class TestEd25519KeyManager:
    """Tests for Ed25519 key generation, signing, and verification."""

    def test_generate_keypair_returns_32_byte_keys(self) -> None:
        manager = Ed25519KeyManager()
        seed, public_bytes = manager.generate_keypair()
        assert len(seed) == 32
        assert len(public_bytes) == 32

    def test_generate_keypair_unique_each_call(self) -> None:
        manager = Ed25519KeyManager()
        assert manager.generate_keypair() != manager.generate_keypair()

    def test_public_key_is_derived_from_seed(self) -> None:
        manager = Ed25519KeyManager()
        seed, public_bytes = manager.generate_keypair()
        assert manager.public_key(seed) == public_bytes

    def test_public_key_rejects_short_seed(self) -> None:
        with pytest.raises(ValueError):
            Ed25519KeyManager().public_key(b"\x00" * 31)

    def test_sign_returns_64_byte_signature(self) -> None:
        manager = Ed25519KeyManager()
        seed, _ = manager.generate_keypair()
        assert len(manager.sign(seed, b"test payload")) == 64

    def test_signatures_are_deterministic(self) -> None:
        manager = Ed25519KeyManager()
        seed, _ = manager.generate_keypair()
        assert manager.sign(seed, b"payload") == manager.sign(seed, b"payload")

    def test_verify_valid_signature_returns_true(self) -> None:
        manager = Ed25519KeyManager()
        seed, public_bytes = manager.generate_keypair()
        signature = manager.sign(seed, b"hello from an agent")
        assert manager.verify(public_bytes, signature, b"hello from an agent") is True

    def test_verify_wrong_data_returns_false(self) -> None:
        manager = Ed25519KeyManager()
        seed, public_bytes = manager.generate_keypair()
        signature = manager.sign(seed, b"original payload")
        assert manager.verify(public_bytes, signature, b"tampered payload") is False

    def test_verify_wrong_key_returns_false(self) -> None:
        manager = Ed25519KeyManager()
        seed, _ = manager.generate_keypair()
        _, other_public_bytes = manager.generate_keypair()
        signature = manager.sign(seed, b"some data")
        assert manager.verify(other_public_bytes, signature, b"some data") is False

    def test_verify_mutated_signature_returns_false(self) -> None:
        manager = Ed25519KeyManager()
        seed, public_bytes = manager.generate_keypair()
        signature = manager.sign(seed, b"payload")
        mutated = bytes([signature[0] ^ 0xFF]) + signature[1:]
        assert manager.verify(public_bytes, mutated, b"payload") is False

    def test_verify_malformed_public_key_returns_false(self) -> None:
        manager = Ed25519KeyManager()
        seed, _ = manager.generate_keypair()
        signature = manager.sign(seed, b"payload")
        assert manager.verify(b"\x01\x02", signature, b"payload") is False


# ---------------------------------------------------------------------------
# did:key encoding
# ---------------------------------------------------------------------------


class TestDidKey:
    def test_ed25519_did_has_z6mk_prefix(self) -> None:
        _, public_bytes = Ed25519KeyManager().generate_keypair()
        did = public_key_to_did(public_bytes)
        assert did.startswith("did:key:z6Mk")

    def test_round_trip_recovers_public_key(self) -> None:
        _, public_bytes = Ed25519KeyManager().generate_keypair()
        assert did_to_public_key(public_key_to_did(public_bytes)) == public_bytes

    def test_same_key_same_did(self) -> None:
        _, public_bytes = Ed25519KeyManager().generate_keypair()
        assert public_key_to_did(public_bytes) == public_key_to_did(public_bytes)

    def test_validate_rejects_other_methods(self) -> None:
        with pytest.raises(ParseError, match="Invalid did:key format"):
            validate_did_key_format("did:web:example.com")

    def test_validate_rejects_non_base58_multibase(self) -> None:
        with pytest.raises(ParseError):
            validate_did_key_format("did:key:mAAAA")

    def test_decode_rejects_wrong_multicodec(self) -> None:
        did = DID_KEY_PREFIX + to_multibase(b"\x12\x00" + b"\x01" * 32, "base58btc")
        with pytest.raises(ParseError, match="Unsupported multicodec prefix"):
            did_to_public_key(did)

    def test_decode_rejects_short_key(self) -> None:
        did = DID_KEY_PREFIX + to_multibase(ED25519_PUB_PREFIX + b"\x01" * 16, "base58btc")
        with pytest.raises(ParseError, match="expected 32"):
            did_to_public_key(did)

    def test_parse_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            did_to_public_key("not-a-did")


# ---------------------------------------------------------------------------
# Generic DIDs and the binary form
# ---------------------------------------------------------------------------


class TestIdentifier:
    @pytest.mark.parametrize(
        "did",
        ["did:web:web3.storage", "did:mailto:example.com:alice", "did:plc:abc123"],
    )
    def test_parse_did_accepts_valid_dids(self, did: str) -> None:
        assert parse_did(did) == did

    @pytest.mark.parametrize("value", ["", "web3.storage", "did:", "did:web:", "did:Web:x y"])
    def test_parse_did_rejects_invalid(self, value: str) -> None:
        with pytest.raises(ParseError):
            parse_did(value)

    def test_parse_did_checks_did_key_payload(self) -> None:
        with pytest.raises(ParseError):
            parse_did("did:key:z6Mk")

    def test_did_method(self) -> None:
        assert did_method("did:web:web3.storage") == "web"

    def test_did_key_binary_form_is_prefixed_public_key(self) -> None:
        _, public_bytes = Ed25519KeyManager().generate_keypair()
        did = public_key_to_did(public_bytes)
        data = did_to_bytes(did)
        assert data == ED25519_PUB_PREFIX + public_bytes
        assert did_from_bytes(data) == did

    def test_non_key_did_binary_round_trip(self) -> None:
        data = did_to_bytes("did:web:web3.storage")
        assert data.endswith(b"did:web:web3.storage")
        assert did_from_bytes(data) == "did:web:web3.storage"

    def test_non_key_did_uses_did_core_code(self) -> None:
        assert did_to_bytes("did:web:x.y").startswith(encode_varint(DID_CORE_CODE))

    def test_did_from_bytes_rejects_unknown_prefix(self) -> None:
        with pytest.raises(ParseError):
            did_from_bytes(b"\x01\x02\x03")
