"""DelegationChain — validates the authority behind a delegation or invocation.

A capability held by a UCAN is authorised when either:

- the UCAN's issuer owns the resource (``capability.resource == issuer``), or
- one of its proofs was addressed to the issuer, holds a capability that
  covers the requested one, and is itself authorised the same way.

Coverage enforces attenuation: a proof may grant the exact ability, a
namespace wildcard (``"upload/*"``) or ``"*"``; and the exact resource or
``"ucan:*"``. Caveats are opaque at this layer and are not compared.
A configurable maximum depth bounds the walk.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from ucan_agent.delegation.delegation import MAX_PROOF_DEPTH, Delegation
from ucan_agent.errors import DelegationChainError
from ucan_agent.ipld.link import CID
from ucan_agent.ucan.capability import Capability
from ucan_agent.ucan.model import now_seconds

ANY_RESOURCE: str = "ucan:*"
ANY_ABILITY: str = "*"


def covers(granted: Capability, requested: Capability) -> bool:
    """Return True if *granted* includes everything *requested* asks for."""
    if granted.resource not in (requested.resource, ANY_RESOURCE):
        return False
    if granted.ability in (requested.ability, ANY_ABILITY):
        return True
    if granted.ability.endswith("/*"):
        return requested.ability.startswith(granted.ability[:-1])
    return False


@dataclass
class ChainEntry:
    """A single hop in a delegation chain.

    Parameters
    ----------
    delegation:
        The delegation at this chain position.
    depth:
        Zero-based distance from the validated leaf (leaf = 0).
    """

    delegation: Delegation
    depth: int


@dataclass
class _Walk:
    now: int
    problems: list[str] = field(default_factory=list)


class DelegationChain:
    """Validates the proof DAG of a single delegation.

    Parameters
    ----------
    delegation:
        The leaf delegation (or invocation) to validate.
    max_depth:
        Maximum number of proof hops from the leaf. Defaults to
        :data:`~ucan_agent.delegation.delegation.MAX_PROOF_DEPTH`.
    """

    def __init__(self, delegation: Delegation, max_depth: int = MAX_PROOF_DEPTH) -> None:
        self._leaf = delegation
        self._max_depth = max_depth

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self, now: int | None = None) -> None:
        """Check that every capability of the leaf is authorised.

        Parameters
        ----------
        now:
            Reference time in unix seconds (defaults to UTC now).

        Raises
        ------
        DelegationChainError
            If any capability lacks a valid chain back to its resource
            owner. The message lists every problem found along the way.
        """
        walk = _Walk(now=now if now is not None else now_seconds())
        for capability in self._leaf.capabilities:
            if not self._authorise(self._leaf, capability, 0, walk):
                detail = "; ".join(walk.problems) or "no proof grants it"
                raise DelegationChainError(
                    f"{capability.ability} on {capability.resource} is not authorised "
                    f"for {self._leaf.issuer}: {detail}"
                )

    def is_valid(self, now: int | None = None) -> bool:
        """Return True if :meth:`validate` would succeed."""
        try:
            self.validate(now)
        except DelegationChainError:
            return False
        return True

    def _authorise(
        self, delegation: Delegation, capability: Capability, depth: int, walk: _Walk
    ) -> bool:
        if depth > self._max_depth:
            walk.problems.append(f"max delegation chain depth ({self._max_depth}) exceeded")
            return False
        if delegation.is_expired(walk.now):
            walk.problems.append(f"{delegation.link} expired at {delegation.expiration}")
            return False
        if delegation.data.is_too_early(walk.now):
            walk.problems.append(f"{delegation.link} is not valid before {delegation.not_before}")
            return False
        if capability.resource == delegation.issuer:
            return True

        for proof in delegation.proofs:
            if isinstance(proof, CID):
                walk.problems.append(f"proof {proof} is not available")
                continue
            if proof.audience != delegation.issuer:
                walk.problems.append(
                    f"proof {proof.link} is addressed to {proof.audience}, not {delegation.issuer}"
                )
                continue
            for granted in proof.capabilities:
                if covers(granted, capability) and self._authorise(
                    proof, capability, depth + 1, walk
                ):
                    return True
        return False

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    def get_chain(self) -> list[ChainEntry]:
        """Return held delegations from the leaf outwards, breadth first.

        Each delegation appears once, at the shortest depth it is reached.
        """
        entries: list[ChainEntry] = []
        seen: set[CID] = set()
        frontier = [self._leaf]
        depth = 0
        while frontier and depth <= self._max_depth:
            next_frontier: list[Delegation] = []
            for delegation in frontier:
                if delegation.link in seen:
                    continue
                seen.add(delegation.link)
                entries.append(ChainEntry(delegation=delegation, depth=depth))
                next_frontier.extend(p for p in delegation.proofs if isinstance(p, Delegation))
            frontier = next_frontier
            depth += 1
        return entries

    def get_depth(self) -> int:
        """Return the greatest depth of any held proof (leaf alone = 0)."""
        return max(entry.depth for entry in self.get_chain())

    def __len__(self) -> int:
        """Return the number of distinct delegations held in the chain."""
        return len(self.get_chain())


__all__ = ["ANY_ABILITY", "ANY_RESOURCE", "ChainEntry", "DelegationChain", "covers"]
