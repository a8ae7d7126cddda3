"""Test that the quickstart API works end to end for ucan-agent."""
from __future__ import annotations

from conftest import FakeService


def test_quickstart_import() -> None:
    import ucan_agent

    assert ucan_agent.__version__ == "0.1.0"


def test_quickstart_signer_has_did_key() -> None:
    from ucan_agent import Signer

    agent = Signer.generate()
    assert agent.did().startswith("did:key:z6Mk")
    assert Signer.parse(agent.format()).did() == agent.did()


def test_quickstart_delegate_and_extract() -> None:
    from ucan_agent import DelegationChain, Signer, delegate, extract
    from ucan_agent.capabilities import upload_list

    space = Signer.generate()
    agent = Signer.generate()
    proof = delegate(space, agent.did(), [upload_list(space)], lifetime=3600)
    loaded = extract(proof.archive())
    assert loaded == proof
    assert DelegationChain(loaded).is_valid()


def test_quickstart_round_trip() -> None:
    from ucan_agent import CAROutboundCodec, Signer, connect, delegate, execute, invoke
    from ucan_agent.capabilities import UPLOAD_LIST_READER, upload_list

    space = Signer.generate()
    agent = Signer.generate()
    service_signer = Signer.generate().with_did("did:web:quickstart.test")
    service = service_signer.verifier()
    proof = delegate(space, agent.did(), [upload_list(space)])

    invocation = invoke(agent, service, upload_list(space), [proof])
    channel = FakeService(service_signer)
    response = execute([invocation], connect(service, CAROutboundCodec(), channel))

    link = response.get(invocation.link)
    assert link is not None
    receipt = UPLOAD_LIST_READER.read(link, response.blocks, service=service)
    assert receipt.out.ok is not None
    assert len(receipt.out.ok.results) == 1


def test_quickstart_errors_share_a_base() -> None:
    from ucan_agent import BuildError, DecodeError, ExecutionError, UcanAgentError

    for error in (BuildError, DecodeError, ExecutionError):
        assert issubclass(error, UcanAgentError)
