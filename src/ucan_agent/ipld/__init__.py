"""Content addressing: Links, DAG-CBOR blocks, the block store, and CAR archives."""
from __future__ import annotations

from ucan_agent.ipld.block import Block, BlockStore, encode, link_for, parse_link, verify_block
from ucan_agent.ipld.car import CarArchive
from ucan_agent.ipld.link import CID, DAG_CBOR, RAW

__all__ = [
    "Block",
    "BlockStore",
    "CID",
    "CarArchive",
    "DAG_CBOR",
    "RAW",
    "encode",
    "link_for",
    "parse_link",
    "verify_block",
]
