"""Invocation builder.

An invocation is a UCAN carrying exactly one capability, addressed to the
service that should execute it. It is signed by the invoking agent and
carries the Links (and blocks) of the delegations that authorise it. Its
Link correlates it with the receipt the service returns.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from ucan_agent.delegation.delegation import Delegation
from ucan_agent.did.identifier import parse_did
from ucan_agent.errors import BuildError, DecodeError, EncodeError, ParseError
from ucan_agent.ipld.block import BlockStore, encode
from ucan_agent.ipld.link import CID
from ucan_agent.principal.principal import Principal
from ucan_agent.principal.signer import Signer
from ucan_agent.ucan.capability import Capability, is_valid_resource
from ucan_agent.ucan.model import issue, now_seconds

logger = logging.getLogger(__name__)

DEFAULT_LIFETIME: int = 30


class Invocation(Delegation):
    """A signed request to execute one capability."""

    @property
    def capability(self) -> Capability:
        """The single capability being invoked."""
        return self.capabilities[0]


def invoke(
    signer: Signer,
    audience: Principal | str,
    capability: Capability,
    proofs: Sequence[Delegation | CID] = (),
    *,
    blocks: BlockStore | None = None,
    issued_at: int | None = None,
    lifetime: int | None = DEFAULT_LIFETIME,
    expiration: int | None = None,
    nonce: str | None = None,
    facts: Sequence[dict[str, Any]] = (),
) -> Invocation:
    """Build and sign an invocation of *capability* by *signer*.

    The same arguments (including *issued_at*) always produce the same
    Link; changing any of them produces a different one.

    Parameters
    ----------
    signer:
        The invoking agent.
    audience:
        The service that will execute the invocation.
    capability:
        The capability to exercise.
    proofs:
        Delegations authorising the invocation, or Links of delegations
        held in *blocks*.
    blocks:
        Store in which Link proofs are looked up.
    issued_at:
        Issuance time in unix seconds (defaults to now).
    lifetime:
        Seconds after *issued_at* until expiry; ``None`` for no expiry.
        Ignored when *expiration* is given.
    expiration:
        Explicit expiry in unix seconds.

    Raises
    ------
    BuildError
        If the capability resource is not a URI, the audience is not a DID,
        a Link proof is not present in *blocks*, or the caveats cannot be
        encoded.
    """
    if not is_valid_resource(capability.resource):
        raise BuildError(f"Invalid resource identifier {capability.resource!r}: expected a URI")
    try:
        audience_did = audience.did() if isinstance(audience, Principal) else parse_did(audience)
    except ParseError as exc:
        raise BuildError(f"Invalid audience: {exc}") from exc

    store = BlockStore()
    links: list[CID] = []
    for proof in proofs:
        if isinstance(proof, CID):
            proof = _resolve_proof(proof, blocks)
        if not isinstance(proof, Delegation):
            raise BuildError(f"Proof must be a Delegation or a Link, got {type(proof).__name__}")
        store.update(proof.iterate_blocks())
        links.append(proof.link)

    issued_at = issued_at if issued_at is not None else now_seconds()
    if expiration is None and lifetime is not None:
        expiration = issued_at + lifetime

    try:
        data = issue(
            signer,
            audience_did,
            [capability],
            expiration=expiration,
            proofs=links,
            issued_at=issued_at,
            nonce=nonce,
            facts=facts,
        )
        root = encode(data.to_ipld())
    except EncodeError as exc:
        raise BuildError(str(exc)) from exc

    invocation = Invocation(root, store)
    logger.debug(
        "Built invocation %s: %s on %s with %d proof(s)",
        invocation.link,
        capability.ability,
        capability.resource,
        len(links),
    )
    return invocation


def _resolve_proof(link: CID, blocks: BlockStore | None) -> Delegation:
    if blocks is None or link not in blocks:
        raise BuildError(f"Proof {link} is not present in the supplied block store")
    try:
        return Delegation(blocks.get(link), blocks)
    except DecodeError as exc:
        raise BuildError(f"Proof {link} is not a valid delegation: {exc}") from exc


__all__ = ["DEFAULT_LIFETIME", "Invocation", "invoke"]
