"""Agent messages — the root block of every archive on the wire.

Requests and responses are CAR archives whose single root is::

    {"ucanto/message@7.0.0": {"execute": [<invocation Link>, ...]}}
    {"ucanto/message@7.0.0": {"report": {"<invocation Link>": <receipt Link>}}}

The remaining blocks are the invocations with their proof chains
(requests) or the receipts with whatever they reference (responses).
"""
from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import Any

from ucan_agent.delegation.delegation import MAX_PROOF_DEPTH, Delegation
from ucan_agent.errors import DecodeError, EncodeError
from ucan_agent.invocation.invocation import Invocation
from ucan_agent.ipld.block import Block, BlockStore, encode, parse_link
from ucan_agent.ipld.car import CarArchive
from ucan_agent.ipld.link import CID
from ucan_agent.receipt.receipt import Receipt

MESSAGE_TAG: str = "ucanto/message@7.0.0"


class Response:
    """Decoded result of a round-trip: the returned blocks plus a report index.

    Parameters
    ----------
    blocks:
        Every block the service returned.
    report:
        Mapping from invocation Link to receipt Link.
    """

    def __init__(self, blocks: BlockStore, report: dict[CID, CID]) -> None:
        self.blocks = blocks
        self._report = dict(report)

    def get(self, link: CID) -> CID | None:
        """Return the receipt Link for invocation *link*, or ``None``.

        ``None`` means the service has not reported on that invocation.
        It is not an error.
        """
        return self._report.get(link)

    def invocation_links(self) -> list[CID]:
        """Links of every invocation the service reported on."""
        return list(self._report)

    def __contains__(self, link: object) -> bool:
        return link in self._report

    def __len__(self) -> int:
        return len(self._report)

    def __repr__(self) -> str:
        return f"Response({len(self._report)} receipt(s), {len(self.blocks)} block(s))"


# ---------------------------------------------------------------------------
# Building
# ---------------------------------------------------------------------------


def build_request(invocations: Sequence[Invocation]) -> tuple[Block, list[Block]]:
    """Return the request root block and every block the request carries.

    Raises
    ------
    EncodeError
        If a proof reference cannot be resolved, a cycle is found, or a
        chain is deeper than :data:`MAX_PROOF_DEPTH`.
    """
    blocks: list[Block] = []
    seen: set[CID] = set()
    for invocation in invocations:
        blocks.extend(_closure(invocation, [], seen))
    root = encode({MESSAGE_TAG: {"execute": [invocation.link for invocation in invocations]}})
    return root, blocks


def build_report(receipts: Sequence[Receipt[Any, Any]]) -> tuple[Block, list[Block]]:
    """Return the response root block and every block the response carries."""
    blocks: list[Block] = []
    seen: set[CID] = set()
    for receipt in receipts:
        for block in receipt.iterate_blocks():
            if block.link not in seen:
                seen.add(block.link)
                blocks.append(block)
    report = {str(receipt.ran): receipt.link for receipt in receipts}
    return encode({MESSAGE_TAG: {"report": report}}), blocks


def _closure(delegation: Delegation, path: list[CID], seen: set[CID]) -> Iterator[Block]:
    if delegation.link in path:
        raise EncodeError(f"Proof cycle through {delegation.link}")
    if len(path) > MAX_PROOF_DEPTH:
        raise EncodeError(f"Proof chain exceeds the maximum depth of {MAX_PROOF_DEPTH}")
    if delegation.link in seen:
        return
    path.append(delegation.link)
    for proof in delegation.proofs:
        if isinstance(proof, CID):
            raise EncodeError(f"Proof {proof} of {delegation.link} is not available to send")
        yield from _closure(proof, path, seen)
    path.pop()
    seen.add(delegation.link)
    yield delegation.root


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def read_message(archive: CarArchive) -> dict[str, Any]:
    """Return the inner message map of a decoded archive.

    Raises
    ------
    DecodeError
        If the archive does not have exactly one root holding an agent
        message.
    """
    if len(archive.roots) != 1:
        raise DecodeError(f"Agent message archive must have one root, got {len(archive.roots)}")
    value = archive.blocks.get(archive.roots[0]).decode()
    if not isinstance(value, dict) or not isinstance(value.get(MESSAGE_TAG), dict):
        raise DecodeError(f"Archive root is not a {MESSAGE_TAG} message")
    return value[MESSAGE_TAG]


def read_report(archive: CarArchive) -> Response:
    """Parse a response archive into a :class:`Response`."""
    message = read_message(archive)
    report = message.get("report", {})
    if not isinstance(report, dict):
        raise DecodeError("Message report must be a map")
    index: dict[CID, CID] = {}
    for key, receipt_link in report.items():
        if not isinstance(receipt_link, CID):
            raise DecodeError(f"Report entry for {key} is not a Link")
        index[parse_link(key)] = receipt_link
    return Response(archive.blocks, index)


def read_request(archive: CarArchive) -> list[Invocation]:
    """Parse a request archive into its invocations, in submission order."""
    message = read_message(archive)
    execute = message.get("execute")
    if not isinstance(execute, list) or not all(isinstance(link, CID) for link in execute):
        raise DecodeError("Message execute must be a list of Links")
    invocations = []
    for link in execute:
        invocation = Invocation(archive.blocks.get(link), archive.blocks)
        if len(invocation.capabilities) != 1:
            raise DecodeError(
                f"Invocation {link} must carry exactly one capability, got {len(invocation.capabilities)}"
            )
        invocations.append(invocation)
    return invocations


__all__ = [
    "MESSAGE_TAG",
    "Response",
    "build_report",
    "build_request",
    "read_message",
    "read_report",
    "read_request",
]
