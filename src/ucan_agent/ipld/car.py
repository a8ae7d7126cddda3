"""CARv1 archives — the self-describing block container used on the wire.

Layout::

    varint(len(header)) || header
    ( varint(len(cid) + len(data)) || cid || data )*

where ``header`` is the DAG-CBOR map ``{"version": 1, "roots": [CID, ...]}``.
Decoding recomputes the hash of every block and rejects any section whose
bytes do not match its CID.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from ucan_agent.errors import DecodeError
from ucan_agent.ipld import cbor
from ucan_agent.ipld.block import Block, BlockStore
from ucan_agent.ipld.encoding import decode_varint, encode_varint
from ucan_agent.ipld.link import CID

logger = logging.getLogger(__name__)

CAR_VERSION: int = 1
MAX_ARCHIVE_SIZE: int = 8 * 1024 * 1024
MAX_BLOCKS: int = 10_000

# CIDv0 is a bare sha2-256 multihash: 0x12 0x20 + 32 digest bytes
_CIDV0_PREFIX: bytes = b"\x12\x20"
_CIDV0_SIZE: int = 34


@dataclass
class CarArchive:
    """A decoded CAR archive.

    Parameters
    ----------
    roots:
        Root Links declared in the header, in order.
    blocks:
        Every block in the archive, hash-verified.
    """

    roots: list[CID]
    blocks: BlockStore = field(default_factory=BlockStore)


def encode(roots: Sequence[CID], blocks: Iterable[Block]) -> bytes:
    """Serialise *roots* and *blocks* as a CARv1 archive."""
    header = cbor.encode({"version": CAR_VERSION, "roots": list(roots)})
    out = bytearray(encode_varint(len(header)))
    out += header
    count = 0
    for block in blocks:
        cid_bytes = bytes(block.link)
        out += encode_varint(len(cid_bytes) + len(block.data))
        out += cid_bytes
        out += block.data
        count += 1
    logger.debug("Encoded CAR with %d root(s), %d block(s), %d bytes", len(roots), count, len(out))
    return bytes(out)


def decode(
    data: bytes,
    *,
    max_size: int = MAX_ARCHIVE_SIZE,
    max_blocks: int = MAX_BLOCKS,
) -> CarArchive:
    """Parse and verify a CARv1 archive.

    Parameters
    ----------
    data:
        The archive bytes.
    max_size:
        Reject archives larger than this many bytes.
    max_blocks:
        Reject archives holding more than this many blocks.

    Raises
    ------
    DecodeError
        If the archive is oversized, truncated, has a malformed header,
        or holds a block whose bytes do not hash to its CID.
    """
    if len(data) > max_size:
        raise DecodeError(f"Archive of {len(data)} bytes exceeds the {max_size} byte limit")
    view = memoryview(data)
    header_size, offset = _read_varint(view, 0)
    header_end = offset + header_size
    if header_size == 0 or header_end > len(view):
        raise DecodeError("Archive header is truncated")
    roots = _decode_header(bytes(view[offset:header_end]))

    archive = CarArchive(roots=roots)
    offset = header_end
    while offset < len(view):
        section_size, offset = _read_varint(view, offset)
        section_end = offset + section_size
        if section_size == 0 or section_end > len(view):
            raise DecodeError(f"Archive section at byte {offset} is truncated")
        link, cid_size = _read_cid(view[offset:section_end])
        archive.blocks.add(link, bytes(view[offset + cid_size:section_end]))
        if len(archive.blocks) > max_blocks:
            raise DecodeError(f"Archive holds more than {max_blocks} blocks")
        offset = section_end

    logger.debug("Decoded CAR with %d root(s), %d block(s)", len(roots), len(archive.blocks))
    return archive


# ------------------------------------------------------------------
# Internal
# ------------------------------------------------------------------


def _read_varint(view: memoryview, offset: int) -> tuple[int, int]:
    """Read a varint at *offset*; return ``(value, offset_after)``."""
    if offset >= len(view):
        raise DecodeError("Unexpected end of archive")
    try:
        return decode_varint(view, offset)
    except ValueError as exc:
        raise DecodeError(f"Malformed varint at byte {offset}: {exc}") from exc


def _decode_header(data: bytes) -> list[CID]:
    try:
        header = cbor.decode(data)
    except DecodeError as exc:
        raise DecodeError(f"Archive header is not valid DAG-CBOR: {exc}") from exc
    if not isinstance(header, dict) or header.get("version") != CAR_VERSION:
        raise DecodeError(f"Unsupported archive header: {header!r}")
    roots = header.get("roots")
    if not isinstance(roots, list) or not all(isinstance(root, CID) for root in roots):
        raise DecodeError("Archive header roots must be a list of Links")
    return roots


def _read_cid(section: memoryview) -> tuple[CID, int]:
    """Parse the CID at the start of a section; return ``(cid, size)``."""
    if bytes(section[:2]) == _CIDV0_PREFIX:
        size = _CIDV0_SIZE
    else:
        version, offset = _read_varint(section, 0)
        if version != 1:
            raise DecodeError(f"Unsupported CID version {version}")
        _, offset = _read_varint(section, offset)  # content codec
        _, offset = _read_varint(section, offset)  # multihash code
        digest_size, offset = _read_varint(section, offset)
        size = offset + digest_size
    if size > len(section):
        raise DecodeError("CID runs past the end of its section")
    try:
        return CID.decode(bytes(section[:size])), size
    except ValueError as exc:
        raise DecodeError(f"Malformed CID in archive: {exc}") from exc


__all__ = ["CarArchive", "MAX_ARCHIVE_SIZE", "MAX_BLOCKS", "decode", "encode"]
