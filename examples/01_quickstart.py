#!/usr/bin/env python3
"""Example: Quickstart

Demonstrates the whole agent flow in one process: a space delegates
upload/list to an agent, the agent invokes it against a service, and the
service's signed receipt is read back with the typed reader.

The service here is answered in-process by a small channel that decodes
the request and signs a receipt, so no network access is needed.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install ucan-agent
"""
from __future__ import annotations

import ucan_agent
from ucan_agent import (
    CARInboundCodec,
    CAROutboundCodec,
    Signer,
    connect,
    delegate,
    execute,
    extract,
    invoke,
    issue_receipt,
)
from ucan_agent.capabilities import UPLOAD_LIST_READER, upload_list


class LocalService:
    """Answers every upload/list invocation with an empty page."""

    def __init__(self, signer: Signer) -> None:
        self.signer = signer
        self.codec = CARInboundCodec()

    def request(self, body: bytes, *, content_type: str, timeout: float | None = None) -> bytes:
        invocations = self.codec.decode(body)
        receipts = [issue_receipt(self.signer, inv, ok={"results": [], "size": 0}) for inv in invocations]
        return self.codec.encode(receipts)


def main() -> None:
    print(f"ucan-agent version: {ucan_agent.__version__}")

    # Step 1: Identities
    space = Signer.generate()
    agent = Signer.generate()
    service_signer = Signer.generate().with_did("did:web:example.storage")
    service = service_signer.verifier()
    print(f"Agent: {agent.did()}")
    print(f"Space: {space.did()}")

    # Step 2: The space grants upload/list to the agent, shipped as a CAR archive
    archive = delegate(space, agent.did(), [upload_list(space)], lifetime=3600).archive()
    proof = extract(archive)
    print(f"Delegation {proof.link} ({len(archive)} bytes)")

    # Step 3: Invoke and execute
    invocation = invoke(agent, service, upload_list(space), [proof])
    connection = connect(service, CAROutboundCodec(), LocalService(service_signer))
    response = execute([invocation], connection)

    # Step 4: Read the receipt
    link = response.get(invocation.link)
    if link is None:
        print("No receipt returned")
        return
    receipt = UPLOAD_LIST_READER.read(link, response.blocks, service=service)
    if receipt.out.ok is not None:
        print(f"Listed {receipt.out.ok.size} upload(s)")
    else:
        print(f"Failed: {receipt.out.error}")

    print("\nQuickstart complete.")


if __name__ == "__main__":
    main()
