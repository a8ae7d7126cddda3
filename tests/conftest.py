"""Shared fixtures: signers, a space delegation, and an in-process fake service."""
from __future__ import annotations

from collections.abc import Callable
from typing import Any, Optional

import pytest

from ucan_agent.capabilities.upload import upload_list
from ucan_agent.delegation.delegation import Delegation, delegate
from ucan_agent.invocation.invocation import Invocation
from ucan_agent.ipld.block import link_for
from ucan_agent.principal.principal import Verifier
from ucan_agent.principal.signer import Signer
from ucan_agent.receipt.receipt import issue_receipt
from ucan_agent.transport.codec import CARInboundCodec

SERVICE_DID: str = "did:web:test.storage"

UPLOAD_ROOT = link_for(b"upload root")
UPLOAD_SHARDS = [link_for(b"shard 0", "raw"), link_for(b"shard 1", "raw")]

Handler = Callable[[Invocation], Optional[dict[str, Any]]]


def list_uploads(invocation: Invocation) -> dict[str, Any]:
    """Answer upload/list with a single upload held in two shards."""
    return {
        "ok": {
            "results": [
                {
                    "root": UPLOAD_ROOT,
                    "shards": UPLOAD_SHARDS,
                    "insertedAt": "2024-01-01T00:00:00Z",
                    "updatedAt": "2024-01-01T00:00:00Z",
                }
            ],
            "size": 1,
        }
    }


class FakeService:
    """A channel that executes requests in-process and answers with signed receipts.

    *handler* maps each invocation to the keyword arguments of
    :func:`issue_receipt` (``{"ok": ...}`` or ``{"error": ...}``); returning
    ``None`` leaves the invocation out of the report.
    """

    def __init__(self, signer: Signer, handler: Handler = list_uploads) -> None:
        self.signer = signer
        self.handler = handler
        self.codec = CARInboundCodec()
        self.requests: list[list[Invocation]] = []
        self.content_types: list[str] = []
        self.closed = False

    def request(self, body: bytes, *, content_type: str, timeout: float | None = None) -> bytes:
        invocations = self.codec.decode(body)
        self.requests.append(invocations)
        self.content_types.append(content_type)
        receipts = []
        for invocation in invocations:
            outcome = self.handler(invocation)
            if outcome is not None:
                receipts.append(issue_receipt(self.signer, invocation, **outcome))
        return self.codec.encode(receipts)

    def close(self) -> None:
        self.closed = True


# ---------------------------------------------------------------------------
# Principals
# ---------------------------------------------------------------------------


@pytest.fixture()
def agent() -> Signer:
    return Signer.generate()


@pytest.fixture()
def space() -> Signer:
    return Signer.generate()


@pytest.fixture()
def service_key() -> Signer:
    """The key the service signs with, under its own did:key."""
    return Signer.generate()


@pytest.fixture()
def service_signer(service_key: Signer) -> Signer:
    """The service key answering to the service's did:web."""
    return service_key.with_did(SERVICE_DID)


@pytest.fixture()
def service(service_signer: Signer) -> Verifier:
    return service_signer.verifier()


# ---------------------------------------------------------------------------
# Delegations and services
# ---------------------------------------------------------------------------


@pytest.fixture()
def proof(space: Signer, agent: Signer) -> Delegation:
    """upload/list on the space, delegated from the space to the agent."""
    return delegate(space, agent.did(), [upload_list(space.did())], lifetime=3600)


@pytest.fixture()
def fake_service(service_signer: Signer) -> FakeService:
    return FakeService(service_signer)
