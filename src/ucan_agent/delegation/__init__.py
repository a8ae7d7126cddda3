"""Capability delegation between principals.

Provides the :class:`Delegation` view over signed UCAN blocks, extraction
from CAR archives, and chain validation enforcing audience continuity and
capability attenuation back to the resource owner.

Quick start
-----------
::

    from ucan_agent.delegation import DelegationChain, delegate, extract
    from ucan_agent.principal import Signer
    from ucan_agent.ucan import Capability

    space = Signer.generate()
    agent = Signer.generate()

    proof = delegate(
        space,
        agent.did(),
        [Capability("upload/list", space.did())],
        lifetime=3600,
    )
    archive = proof.archive()

    loaded = extract(archive)
    DelegationChain(loaded).validate()
"""
from __future__ import annotations

from ucan_agent.delegation.chain import ChainEntry, DelegationChain, covers
from ucan_agent.delegation.delegation import (
    DELEGATION_VARIANT,
    MAX_PROOF_DEPTH,
    Delegation,
    delegate,
    extract,
)
from ucan_agent.errors import DelegationChainError

__all__ = [
    "ChainEntry",
    "DELEGATION_VARIANT",
    "Delegation",
    "DelegationChain",
    "DelegationChainError",
    "MAX_PROOF_DEPTH",
    "covers",
    "delegate",
    "extract",
]
