"""Content-addressed blocks and the append-only block store.

A :class:`Block` pairs raw bytes with their Link (a CIDv1). Links are
computed with ``sha2-256`` over the exact bytes, so two blocks with
identical bytes always share a Link. A :class:`BlockStore` maps Links to
blocks; it never removes or replaces an entry.
"""
from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any

from ucan_agent.errors import BlockNotFoundError, DecodeError
from ucan_agent.ipld import cbor
from ucan_agent.ipld.link import CID, DAG_CBOR, SHA2_256, sha2_256


@dataclass(frozen=True)
class Block:
    """An encoded block and its Link.

    Parameters
    ----------
    link:
        The CID identifying *data*.
    data:
        The encoded bytes.
    """

    link: CID
    data: bytes

    def decode(self) -> Any:
        """Decode the block as DAG-CBOR.

        Raises
        ------
        DecodeError
            If the block is not tagged ``dag-cbor`` or its bytes are not
            valid DAG-CBOR.
        """
        if self.link.codec != DAG_CBOR:
            raise DecodeError(f"Block {self.link} has codec {self.link.codec_name}, not dag-cbor")
        try:
            return cbor.decode(self.data)
        except DecodeError as exc:
            raise DecodeError(f"Block {self.link} is not valid DAG-CBOR: {exc}") from exc


def link_for(data: bytes, codec: int | str = DAG_CBOR) -> CID:
    """Compute the CIDv1 Link of *data* with a ``sha2-256`` multihash."""
    return CID(1, codec, sha2_256(data))


def encode(value: Any) -> Block:
    """Encode *value* as DAG-CBOR and return the resulting :class:`Block`.

    Raises
    ------
    EncodeError
        If *value* holds something DAG-CBOR cannot represent.
    """
    data = cbor.encode(value)
    return Block(link_for(data), data)


def verify_block(link: CID, data: bytes) -> Block:
    """Recompute the hash of *data* and compare it with *link*.

    Returns
    -------
    Block
        The verified block.

    Raises
    ------
    DecodeError
        If the hash function is unsupported or the digests differ.
    """
    if link.hash_code != SHA2_256:
        raise DecodeError(f"Cannot verify block {link}: unsupported hash function 0x{link.hash_code:x}")
    if sha2_256(data) != link.multihash:
        raise DecodeError(f"Block bytes do not match their Link {link}")
    return Block(link, bytes(data))


def parse_link(value: str | bytes | CID) -> CID:
    """Parse a Link from its string or binary form.

    Raises
    ------
    DecodeError
        If *value* is not a valid CID.
    """
    if isinstance(value, CID):
        return value
    try:
        return CID.decode(value)
    except ValueError as exc:
        raise DecodeError(f"Invalid Link {value!r}: {exc}") from exc


class BlockStore:
    """Append-only mapping from Link to :class:`Block`, deduplicated by Link.

    Parameters
    ----------
    blocks:
        Optional blocks to seed the store with. They are trusted as-is;
        use :meth:`add` for bytes that arrived from outside the process.
    """

    def __init__(self, blocks: Iterable[Block] = ()) -> None:
        self._blocks: dict[CID, Block] = {}
        for block in blocks:
            self.put(block)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def put(self, block: Block) -> None:
        """Insert *block* unless a block with the same Link is already held."""
        self._blocks.setdefault(block.link, block)

    def add(self, link: CID, data: bytes) -> Block:
        """Verify *data* against *link* and insert it.

        Raises
        ------
        DecodeError
            If the bytes do not hash to *link*.
        """
        block = verify_block(link, data)
        self.put(block)
        return block

    def update(self, blocks: Iterable[Block]) -> None:
        """Insert every block from *blocks*."""
        for block in blocks:
            self.put(block)

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    def get(self, link: CID) -> Block:
        """Return the block for *link*.

        Raises
        ------
        BlockNotFoundError
            If this store does not hold *link*.
        """
        block = self._blocks.get(link)
        if block is None:
            raise BlockNotFoundError(link)
        return block

    def find(self, link: CID) -> Block | None:
        """Return the block for *link*, or ``None`` when absent."""
        return self._blocks.get(link)

    def links(self) -> list[CID]:
        """Return all Links in insertion order."""
        return list(self._blocks)

    def __contains__(self, link: object) -> bool:
        return link in self._blocks

    def __iter__(self) -> Iterator[Block]:
        return iter(list(self._blocks.values()))

    def __len__(self) -> int:
        return len(self._blocks)

    def __repr__(self) -> str:
        return f"BlockStore({len(self._blocks)} blocks)"


__all__ = [
    "Block",
    "BlockStore",
    "DAG_CBOR",
    "encode",
    "link_for",
    "parse_link",
    "verify_block",
]
