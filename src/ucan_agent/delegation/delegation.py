"""Delegation — a signed capability grant backed by content-addressed blocks.

A :class:`Delegation` is a view over a root UCAN block plus the block store
holding its proofs. Proofs are referenced only by Link; a proof whose block
is present in the store is exposed as a nested :class:`Delegation`, one
that is absent is exposed as its bare Link.

Archives
--------
Delegations travel as CARv1 archives. :func:`extract` accepts either a
CAR whose root is the delegation block itself or one whose root is the
variant map ``{"ucan@0.9.1": <Link>}`` written by :meth:`Delegation.archive`.
"""
from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from typing import Any

from ucan_agent.did.did_key import DID_KEY_PREFIX
from ucan_agent.errors import DecodeError, InvalidSignatureError
from ucan_agent.ipld import car, cbor
from ucan_agent.ipld.block import Block, BlockStore, encode
from ucan_agent.ipld.link import CID
from ucan_agent.principal.principal import Signature, Verifier
from ucan_agent.principal.signer import Signer
from ucan_agent.ucan.capability import Capability
from ucan_agent.ucan.model import UCANData, issue, now_seconds

logger = logging.getLogger(__name__)

DELEGATION_VARIANT: str = "ucan@0.9.1"
MAX_ARCHIVE_SIZE: int = car.MAX_ARCHIVE_SIZE
MAX_PROOF_DEPTH: int = 16


class Delegation:
    """A decoded UCAN delegation and the blocks of its proof chain.

    Parameters
    ----------
    root:
        The block holding this delegation.
    blocks:
        Store holding *root* and any proof blocks. A new store holding only
        *root* is created when omitted.

    Raises
    ------
    DecodeError
        If *root* is not a well-formed UCAN block.
    """

    def __init__(self, root: Block, blocks: BlockStore | None = None) -> None:
        self.root = root
        self.blocks = blocks if blocks is not None else BlockStore()
        self.blocks.put(root)
        self._value: dict[str, Any] = root.decode()
        self.data = UCANData.from_ipld(self._value)

    # ------------------------------------------------------------------
    # Fields
    # ------------------------------------------------------------------

    @property
    def link(self) -> CID:
        """The Link of the root block."""
        return self.root.link

    @property
    def issuer(self) -> str:
        return self.data.issuer

    @property
    def audience(self) -> str:
        return self.data.audience

    @property
    def capabilities(self) -> tuple[Capability, ...]:
        return self.data.capabilities

    @property
    def expiration(self) -> int | None:
        return self.data.expiration

    @property
    def not_before(self) -> int | None:
        return self.data.not_before

    @property
    def signature(self) -> Signature:
        return self.data.signature  # type: ignore[return-value]

    @property
    def proof_links(self) -> tuple[CID, ...]:
        return self.data.proofs

    @property
    def proofs(self) -> list["Delegation | CID"]:
        """Proofs as delegations where their blocks are held, else as Links."""
        resolved: list[Delegation | CID] = []
        for link in self.data.proofs:
            block = self.blocks.find(link)
            resolved.append(Delegation(block, self.blocks) if block is not None else link)
        return resolved

    # ------------------------------------------------------------------
    # Blocks
    # ------------------------------------------------------------------

    def iterate_blocks(self) -> Iterator[Block]:
        """Yield every held block of the proof DAG, proofs before dependents.

        Each block is yielded once even when several delegations share a
        proof.
        """
        seen: set[CID] = set()

        def walk(delegation: Delegation) -> Iterator[Block]:
            for proof in delegation.proofs:
                if isinstance(proof, Delegation) and proof.link not in seen:
                    seen.add(proof.link)
                    yield from walk(proof)
            yield delegation.root

        seen.add(self.link)
        yield from walk(self)

    def archive(self) -> bytes:
        """Serialise this delegation and its proofs as a CAR archive."""
        variant = encode({DELEGATION_VARIANT: self.link})
        return car.encode([variant.link], [*self.iterate_blocks(), variant])

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def signing_bytes(self) -> bytes:
        """The exact bytes the issuer signed, taken from the stored block."""
        return cbor.encode({k: v for k, v in self._value.items() if k != "s"})

    def verify_signature(self, verifier: Verifier | None = None) -> bool:
        """Return True if the signature was made by the issuer.

        Parameters
        ----------
        verifier:
            Key to check against. Defaults to the issuer's own key, which
            is only available when the issuer is a ``did:key``.

        Raises
        ------
        ValueError
            If no verifier is given and the issuer is not a ``did:key``.
        """
        if verifier is None:
            if not self.issuer.startswith(DID_KEY_PREFIX):
                raise ValueError(f"No key available to verify issuer {self.issuer!r}")
            verifier = Verifier.from_did_key(self.issuer)
        return verifier.verify(self.signing_bytes(), self.signature)

    def is_expired(self, now: int | None = None) -> bool:
        return self.data.is_expired(now)

    # ------------------------------------------------------------------
    # Dunder
    # ------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Delegation) and other.link == self.link

    def __hash__(self) -> int:
        return hash(self.link)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(link={str(self.link)!r}, issuer={self.issuer!r}, "
            f"audience={self.audience!r})"
        )


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


def delegate(
    issuer: Signer,
    audience: str,
    capabilities: Sequence[Capability],
    *,
    lifetime: int | None = None,
    expiration: int | None = None,
    not_before: int | None = None,
    nonce: str | None = None,
    facts: Sequence[dict[str, Any]] = (),
    proofs: Sequence[Delegation] = (),
) -> Delegation:
    """Issue a new delegation from *issuer* to *audience*.

    Parameters
    ----------
    lifetime:
        Seconds from now until expiry. Ignored when *expiration* is given.
        With neither set the delegation never expires.
    proofs:
        Delegations authorising this grant. Their blocks are carried along
        so :meth:`Delegation.archive` exports the whole chain.
    """
    if expiration is None and lifetime is not None:
        expiration = now_seconds() + lifetime
    data = issue(
        issuer,
        audience,
        capabilities,
        expiration=expiration,
        proofs=[proof.link for proof in proofs],
        not_before=not_before,
        nonce=nonce,
        facts=facts,
    )
    blocks = BlockStore()
    for proof in proofs:
        blocks.update(proof.iterate_blocks())
    return Delegation(encode(data.to_ipld()), blocks)


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


def extract(data: bytes) -> Delegation:
    """Decode a delegation archive into a :class:`Delegation` handle.

    Every block's Link is recomputed while the archive is read, and every
    delegation in the chain issued by a ``did:key`` has its signature
    checked.

    Raises
    ------
    DecodeError
        If the bytes are not a well-formed archive, a block fails its hash
        check, a signature does not verify, or the chain is deeper than
        :data:`MAX_PROOF_DEPTH`.
    """
    archive = car.decode(data, max_size=MAX_ARCHIVE_SIZE)
    if len(archive.roots) != 1:
        raise DecodeError(f"Delegation archive must have exactly one root, got {len(archive.roots)}")
    root = archive.blocks.get(archive.roots[0])
    value = root.decode()
    if isinstance(value, dict) and list(value) == [DELEGATION_VARIANT]:
        link = value[DELEGATION_VARIANT]
        if not isinstance(link, CID):
            raise DecodeError(f"{DELEGATION_VARIANT!r} must hold a Link")
        root = archive.blocks.get(link)

    delegation = Delegation(root, archive.blocks)
    _verify_chain(delegation, depth=0, seen=set())
    logger.debug(
        "Extracted delegation %s (%d block(s)) from %s to %s",
        delegation.link,
        len(archive.blocks),
        delegation.issuer,
        delegation.audience,
    )
    return delegation


def _verify_chain(delegation: Delegation, depth: int, seen: set[CID]) -> None:
    if depth > MAX_PROOF_DEPTH:
        raise DecodeError(f"Proof chain exceeds the maximum depth of {MAX_PROOF_DEPTH}")
    if delegation.link in seen:
        return
    seen.add(delegation.link)
    if delegation.issuer.startswith(DID_KEY_PREFIX):
        if not delegation.verify_signature():
            raise InvalidSignatureError(
                f"Signature on delegation {delegation.link} does not match issuer {delegation.issuer}"
            )
    else:
        logger.debug(
            "Skipping signature check for %s: issuer %s is not a did:key",
            delegation.link,
            delegation.issuer,
        )
    for proof in delegation.proofs:
        if isinstance(proof, Delegation):
            _verify_chain(proof, depth + 1, seen)


__all__ = [
    "DELEGATION_VARIANT",
    "Delegation",
    "MAX_PROOF_DEPTH",
    "delegate",
    "extract",
]
