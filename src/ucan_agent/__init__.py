"""ucan-agent — a UCAN agent for content-addressed storage services.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import ucan_agent
>>> ucan_agent.__version__
'0.1.0'

Quick start
-----------
::

    from ucan_agent import (
        CAROutboundCodec, HTTPChannel, Signer, connect, execute, extract, invoke,
        parse,
    )
    from ucan_agent.capabilities import UPLOAD_LIST_READER, upload_list

    agent = Signer.parse(secret)
    service = parse("did:key:z6Mk...")
    proof = extract(open("proof.car", "rb").read())

    invocation = invoke(agent, service, upload_list(space_did), [proof])
    with HTTPChannel("https://up.web3.storage") as channel:
        response = execute([invocation], connect(service, CAROutboundCodec(), channel))

    link = response.get(invocation.link)
    if link is not None:
        receipt = UPLOAD_LIST_READER.read(link, response.blocks, service=service)
"""
from __future__ import annotations

__version__: str = "0.1.0"

# ------------------------------------------------------------------
# Errors
# ------------------------------------------------------------------
from ucan_agent.errors import (
    BlockNotFoundError,
    BuildError,
    ConfigError,
    DecodeError,
    DelegationChainError,
    EncodeError,
    ExecutionError,
    InvalidSignatureError,
    ParseError,
    SchemaError,
    SigningError,
    TransportError,
    UcanAgentError,
)

# ------------------------------------------------------------------
# Identity
# ------------------------------------------------------------------
from ucan_agent.principal import Principal, Signature, Signer, Verifier, parse

# ------------------------------------------------------------------
# Blocks
# ------------------------------------------------------------------
from ucan_agent.ipld import Block, BlockStore

# ------------------------------------------------------------------
# UCANs
# ------------------------------------------------------------------
from ucan_agent.ucan import Capability
from ucan_agent.delegation import Delegation, DelegationChain, delegate, extract
from ucan_agent.invocation import Invocation, invoke

# ------------------------------------------------------------------
# Transport and execution
# ------------------------------------------------------------------
from ucan_agent.transport import CARInboundCodec, CAROutboundCodec, HTTPChannel, Response
from ucan_agent.client import Connection, connect, execute

# ------------------------------------------------------------------
# Receipts
# ------------------------------------------------------------------
from ucan_agent.receipt import Outcome, Receipt, ReceiptReader, issue_receipt

# ------------------------------------------------------------------
# Configuration
# ------------------------------------------------------------------
from ucan_agent.config import AgentSettings, load_settings

__all__ = [
    "__version__",
    # Errors
    "BlockNotFoundError",
    "BuildError",
    "ConfigError",
    "DecodeError",
    "DelegationChainError",
    "EncodeError",
    "ExecutionError",
    "InvalidSignatureError",
    "ParseError",
    "SchemaError",
    "SigningError",
    "TransportError",
    "UcanAgentError",
    # Identity
    "Principal",
    "Signature",
    "Signer",
    "Verifier",
    "parse",
    # Blocks
    "Block",
    "BlockStore",
    # UCANs
    "Capability",
    "Delegation",
    "DelegationChain",
    "Invocation",
    "delegate",
    "extract",
    "invoke",
    # Transport and execution
    "CARInboundCodec",
    "CAROutboundCodec",
    "Connection",
    "HTTPChannel",
    "Response",
    "connect",
    "execute",
    # Receipts
    "Outcome",
    "Receipt",
    "ReceiptReader",
    "issue_receipt",
    # Configuration
    "AgentSettings",
    "load_settings",
]
