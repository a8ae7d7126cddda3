"""Tests for ucan_agent.invocation — building and signing invocations."""
from __future__ import annotations

import pytest

from ucan_agent.capabilities.upload import UploadListCaveats, upload_list
from ucan_agent.delegation.chain import DelegationChain
from ucan_agent.delegation.delegation import Delegation
from ucan_agent.errors import BuildError
from ucan_agent.invocation.invocation import DEFAULT_LIFETIME, Invocation, invoke
from ucan_agent.ipld.block import BlockStore, link_for
from ucan_agent.principal.principal import Principal, Verifier
from ucan_agent.principal.signer import Signer
from ucan_agent.ucan.capability import Capability

ISSUED_AT: int = 1_700_000_000


class TestInvoke:
    def test_fields(self, agent: Signer, service: Verifier, space: Signer, proof: Delegation) -> None:
        invocation = invoke(agent, service, upload_list(space), [proof], issued_at=ISSUED_AT)
        assert invocation.issuer == agent.did()
        assert invocation.audience == service.did()
        assert invocation.capability.ability == "upload/list"
        assert invocation.capability.resource == space.did()
        assert invocation.proof_links == (proof.link,)

    def test_default_expiration(self, agent: Signer, service: Verifier, space: Signer) -> None:
        invocation = invoke(agent, service, upload_list(space), issued_at=ISSUED_AT)
        assert invocation.data.issued_at == ISSUED_AT
        assert invocation.expiration == ISSUED_AT + DEFAULT_LIFETIME == ISSUED_AT + 30

    def test_no_lifetime_never_expires(self, agent: Signer, service: Verifier, space: Signer) -> None:
        invocation = invoke(agent, service, upload_list(space), issued_at=ISSUED_AT, lifetime=None)
        assert invocation.expiration is None

    def test_explicit_expiration_wins(self, agent: Signer, service: Verifier, space: Signer) -> None:
        invocation = invoke(
            agent, service, upload_list(space), issued_at=ISSUED_AT, lifetime=5, expiration=ISSUED_AT + 99
        )
        assert invocation.expiration == ISSUED_AT + 99

    def test_link_is_deterministic(self, agent: Signer, service: Verifier, space: Signer, proof: Delegation) -> None:
        first = invoke(agent, service, upload_list(space), [proof], issued_at=ISSUED_AT)
        second = invoke(agent, service, upload_list(space), [proof], issued_at=ISSUED_AT)
        assert first.link == second.link

    def test_any_change_changes_link(self, agent: Signer, service: Verifier, space: Signer) -> None:
        base = invoke(agent, service, upload_list(space), issued_at=ISSUED_AT)
        assert invoke(agent, service, upload_list(space), issued_at=ISSUED_AT + 1).link != base.link
        assert invoke(agent, service, upload_list(space), issued_at=ISSUED_AT, nonce="n").link != base.link
        caveats = UploadListCaveats(size=5)
        assert invoke(agent, service, upload_list(space, caveats), issued_at=ISSUED_AT).link != base.link

    def test_audience_may_be_did_string(self, agent: Signer, space: Signer) -> None:
        invocation = invoke(agent, "did:web:test.storage", upload_list(space))
        assert invocation.audience == "did:web:test.storage"

    def test_signed_by_agent(self, agent: Signer, service: Verifier, space: Signer) -> None:
        invocation = invoke(agent, service, upload_list(space))
        assert invocation.verify_signature()
        assert isinstance(invocation, Invocation)

    def test_caveats_are_carried(self, agent: Signer, service: Verifier, space: Signer) -> None:
        invocation = invoke(agent, service, upload_list(space, UploadListCaveats(size=10, cursor="c")))
        assert invocation.capability.nb() == {"size": 10, "cursor": "c"}


class TestProofs:
    def test_proof_blocks_are_carried(
        self, agent: Signer, service: Verifier, space: Signer, proof: Delegation
    ) -> None:
        invocation = invoke(agent, service, upload_list(space), [proof])
        assert proof.link in invocation.blocks
        assert invocation.proofs == [proof]

    def test_link_proof_resolved_from_blocks(
        self, agent: Signer, service: Verifier, space: Signer, proof: Delegation
    ) -> None:
        blocks = BlockStore(proof.iterate_blocks())
        invocation = invoke(agent, service, upload_list(space), [proof.link], blocks=blocks)
        assert invocation.proofs == [proof]

    def test_chain_validates(self, agent: Signer, service: Verifier, space: Signer, proof: Delegation) -> None:
        invocation = invoke(agent, service, upload_list(space), [proof])
        DelegationChain(invocation).validate()

    def test_without_proof_chain_does_not_validate(
        self, agent: Signer, service: Verifier, space: Signer
    ) -> None:
        invocation = invoke(agent, service, upload_list(space))
        assert not DelegationChain(invocation).is_valid()


class TestBuildErrors:
    def test_invalid_resource(self, agent: Signer, service: Verifier) -> None:
        with pytest.raises(BuildError, match="Invalid resource"):
            invoke(agent, service, Capability("upload/list", "not a uri"))

    def test_invalid_audience(self, agent: Signer, space: Signer) -> None:
        with pytest.raises(BuildError, match="Invalid audience"):
            invoke(agent, "web3.storage", upload_list(space))

    def test_link_proof_missing_from_blocks(self, agent: Signer, service: Verifier, space: Signer) -> None:
        with pytest.raises(BuildError, match="not present"):
            invoke(agent, service, upload_list(space), [link_for(b"absent")], blocks=BlockStore())

    def test_link_proof_without_blocks(self, agent: Signer, service: Verifier, space: Signer) -> None:
        with pytest.raises(BuildError):
            invoke(agent, service, upload_list(space), [link_for(b"absent")])

    def test_proof_of_wrong_type(self, agent: Signer, service: Verifier, space: Signer) -> None:
        with pytest.raises(BuildError, match="must be a Delegation or a Link"):
            invoke(agent, service, upload_list(space), [Principal("did:web:x.y")])  # type: ignore[list-item]

    def test_unencodable_caveats(self, agent: Signer, service: Verifier, space: Signer) -> None:
        capability = Capability("upload/list", space.did(), {"bad": object()})
        with pytest.raises(BuildError):
            invoke(agent, service, capability)
