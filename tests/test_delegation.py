"""Tests for ucan_agent.delegation — delegate, archive, and extract."""
from __future__ import annotations

from dataclasses import replace

import pytest

from ucan_agent.capabilities.upload import upload_list
from ucan_agent.delegation.delegation import (
    DELEGATION_VARIANT,
    MAX_PROOF_DEPTH,
    Delegation,
    delegate,
    extract,
)
from ucan_agent.errors import DecodeError, InvalidSignatureError
from ucan_agent.ipld import car
from ucan_agent.ipld.block import BlockStore, encode, link_for
from ucan_agent.principal.signer import Signer
from ucan_agent.ucan.capability import Capability
from ucan_agent.ucan.model import now_seconds


def nested_chain(space: Signer, length: int) -> tuple[Delegation, list[Signer]]:
    """Re-delegate upload/list on *space* through *length* hops."""
    signers = [space]
    current: Delegation | None = None
    for _ in range(length):
        audience = Signer.generate()
        proofs = [current] if current is not None else []
        current = delegate(signers[-1], audience.did(), [upload_list(space.did())], proofs=proofs)
        signers.append(audience)
    assert current is not None
    return current, signers


# ---------------------------------------------------------------------------
# delegate
# ---------------------------------------------------------------------------


class TestDelegate:
    def test_fields(self, proof: Delegation, space: Signer, agent: Signer) -> None:
        assert proof.issuer == space.did()
        assert proof.audience == agent.did()
        assert proof.capabilities == (Capability("upload/list", space.did()),)
        assert proof.proofs == []

    def test_lifetime_sets_expiration(self, space: Signer, agent: Signer) -> None:
        before = now_seconds()
        delegation = delegate(space, agent.did(), [upload_list(space.did())], lifetime=60)
        assert before + 60 <= delegation.expiration <= now_seconds() + 60
        assert not delegation.is_expired()
        assert delegation.is_expired(now=delegation.expiration + 1)

    def test_no_lifetime_never_expires(self, space: Signer, agent: Signer) -> None:
        delegation = delegate(space, agent.did(), [upload_list(space.did())])
        assert delegation.expiration is None
        assert not delegation.is_expired(now=2**40)

    def test_signature_verifies(self, proof: Delegation) -> None:
        assert proof.verify_signature()

    def test_signature_fails_with_other_key(self, proof: Delegation) -> None:
        assert not proof.verify_signature(Signer.generate().verifier())

    def test_non_key_issuer_needs_explicit_verifier(self, service_signer: Signer, agent: Signer) -> None:
        delegation = delegate(service_signer, agent.did(), [Capability("*", "ucan:*")])
        with pytest.raises(ValueError, match="No key available"):
            delegation.verify_signature()
        assert delegation.verify_signature(service_signer.verifier())

    def test_nonce_changes_link(self, space: Signer, agent: Signer) -> None:
        capability = upload_list(space.did())
        first = delegate(space, agent.did(), [capability], expiration=1_900_000_000, nonce="a")
        second = delegate(space, agent.did(), [capability], expiration=1_900_000_000, nonce="b")
        assert first.link != second.link

    def test_equality_is_by_link(self, proof: Delegation) -> None:
        copy = Delegation(proof.root, BlockStore())
        assert copy == proof
        assert hash(copy) == hash(proof)

    def test_non_ucan_block_rejected(self) -> None:
        with pytest.raises(DecodeError):
            Delegation(encode({"not": "a ucan"}))


# ---------------------------------------------------------------------------
# Proof chains
# ---------------------------------------------------------------------------


class TestProofs:
    def test_proofs_resolve_to_delegations(self, space: Signer) -> None:
        leaf, _ = nested_chain(space, 3)
        middle = leaf.proofs[0]
        assert isinstance(middle, Delegation)
        root = middle.proofs[0]
        assert isinstance(root, Delegation)
        assert root.issuer == space.did()

    def test_missing_proof_is_exposed_as_link(self, space: Signer) -> None:
        leaf, _ = nested_chain(space, 2)
        bare = Delegation(leaf.root)
        assert bare.proofs == [leaf.proof_links[0]]

    def test_iterate_blocks_yields_proofs_first(self, space: Signer) -> None:
        leaf, _ = nested_chain(space, 3)
        links = [block.link for block in leaf.iterate_blocks()]
        assert len(links) == 3
        assert links[-1] == leaf.link
        assert links[0] == leaf.proofs[0].proofs[0].link

    def test_shared_proof_yielded_once(self, proof: Delegation, agent: Signer, space: Signer) -> None:
        other = delegate(agent, Signer.generate().did(), [upload_list(space.did())], proofs=[proof, proof])
        assert [block.link for block in other.iterate_blocks()] == [proof.link, other.link]


# ---------------------------------------------------------------------------
# archive / extract
# ---------------------------------------------------------------------------


class TestExtract:
    def test_archive_round_trip(self, proof: Delegation) -> None:
        extracted = extract(proof.archive())
        assert extracted == proof
        assert extracted.issuer == proof.issuer
        assert extracted.capabilities == proof.capabilities

    def test_archive_root_is_variant(self, proof: Delegation) -> None:
        archive = car.decode(proof.archive())
        assert archive.blocks.get(archive.roots[0]).decode() == {DELEGATION_VARIANT: proof.link}

    def test_bare_root_accepted(self, proof: Delegation) -> None:
        data = car.encode([proof.link], list(proof.iterate_blocks()))
        assert extract(data) == proof

    def test_nested_chain_extracted(self, space: Signer) -> None:
        leaf, signers = nested_chain(space, 4)
        extracted = extract(leaf.archive())
        assert extracted.audience == signers[-1].did()
        assert len(extracted.blocks) == 5  # four delegations plus the variant root
        assert all(isinstance(p, Delegation) for p in extracted.proofs)

    def test_tampered_block_rejected(self, proof: Delegation) -> None:
        data = bytearray(proof.archive())
        index = bytes(data).index(proof.root.data) + len(proof.root.data) - 1
        data[index] ^= 0x01
        with pytest.raises(DecodeError):
            extract(bytes(data))

    def test_forged_audience_rejected(self, proof: Delegation) -> None:
        forged = replace(proof.data, audience=Signer.generate().did())
        block = encode(forged.to_ipld())
        with pytest.raises(InvalidSignatureError):
            extract(car.encode([block.link], [block]))

    def test_unsigned_extra_field_rejected(self, proof: Delegation) -> None:
        value = proof.root.decode()
        value["fct"] = [{"granted": "everything"}]
        value["ext"] = "smuggled"
        block = encode(value)
        assert not Delegation(block, BlockStore()).verify_signature()
        with pytest.raises(InvalidSignatureError):
            extract(car.encode([block.link], [block]))

    def test_forged_proof_in_chain_rejected(self, proof: Delegation, agent: Signer, space: Signer) -> None:
        forged = encode(replace(proof.data, expiration=None).to_ipld())
        leaf = delegate(agent, Signer.generate().did(), [upload_list(space.did())])
        leaf_data = replace(leaf.data, proofs=(forged.link,))
        leaf_block = encode(replace(leaf_data, signature=agent.sign(leaf_data.signing_bytes())).to_ipld())
        with pytest.raises(InvalidSignatureError):
            extract(car.encode([leaf_block.link], [forged, leaf_block]))

    def test_multiple_roots_rejected(self, proof: Delegation) -> None:
        data = car.encode([proof.link, proof.link], [proof.root])
        with pytest.raises(DecodeError, match="exactly one root"):
            extract(data)

    def test_missing_root_block_rejected(self) -> None:
        with pytest.raises(DecodeError):
            extract(car.encode([link_for(b"absent")], []))

    def test_oversized_input_rejected(self) -> None:
        with pytest.raises(DecodeError, match="exceeds"):
            extract(b"\x00" * (car.MAX_ARCHIVE_SIZE + 1))

    def test_garbage_rejected(self) -> None:
        with pytest.raises(DecodeError):
            extract(b"definitely not a car file")

    def test_chain_deeper_than_limit_rejected(self, space: Signer) -> None:
        leaf, _ = nested_chain(space, MAX_PROOF_DEPTH + 2)
        with pytest.raises(DecodeError, match="maximum depth"):
            extract(leaf.archive())

    def test_chain_at_limit_accepted(self, space: Signer) -> None:
        leaf, _ = nested_chain(space, MAX_PROOF_DEPTH + 1)
        assert extract(leaf.archive()) == leaf
