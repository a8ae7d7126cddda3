"""DAG-CBOR — the deterministic CBOR subset every block is encoded in.

Built on ``cbor2`` with canonical map ordering. Links are carried as CBOR
tag 42 wrapping ``0x00 || cid bytes``; no other tag is allowed. Decoded
values are limited to the IPLD data model: ``None``, ``bool``, ``int``,
``float``, ``str``, ``bytes``, ``list``, ``dict`` with string keys, and
:class:`~ucan_agent.ipld.link.CID`.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import cbor2

from ucan_agent.errors import DecodeError, EncodeError
from ucan_agent.ipld.link import CID

CID_TAG: int = 42
MAX_NESTING: int = 256


def encode(value: Any) -> bytes:
    """Encode *value* as canonical DAG-CBOR.

    Tuples are encoded as lists.

    Raises
    ------
    EncodeError
        If *value* holds anything outside the IPLD data model.
    """
    try:
        return cbor2.dumps(_to_cbor(value, 0), canonical=True)
    except (cbor2.CBOREncodeError, TypeError, ValueError) as exc:
        raise EncodeError(f"Value cannot be encoded as DAG-CBOR: {exc}") from exc


def decode(data: bytes) -> Any:
    """Decode DAG-CBOR bytes.

    Raises
    ------
    DecodeError
        If the bytes are not CBOR, or hold a tag other than 42, a non-string
        map key, or a value outside the IPLD data model.
    """
    try:
        value = cbor2.loads(data)
    except (cbor2.CBORDecodeError, ValueError, TypeError) as exc:
        raise DecodeError(f"Invalid CBOR: {exc}") from exc
    return _from_cbor(value, 0)


# ------------------------------------------------------------------
# Internal
# ------------------------------------------------------------------


def _to_cbor(value: Any, depth: int) -> Any:
    if depth > MAX_NESTING:
        raise EncodeError(f"Value nested deeper than {MAX_NESTING} levels")
    if value is None or isinstance(value, (bool, int, str, bytes)):
        return value
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            raise EncodeError("DAG-CBOR cannot encode NaN or infinite floats")
        return value
    if isinstance(value, CID):
        return cbor2.CBORTag(CID_TAG, b"\x00" + bytes(value))
    if isinstance(value, (list, tuple)):
        return [_to_cbor(item, depth + 1) for item in value]
    if isinstance(value, Mapping):
        out = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise EncodeError(f"DAG-CBOR map keys must be strings, got {type(key).__name__}")
            out[key] = _to_cbor(item, depth + 1)
        return out
    raise EncodeError(f"Cannot encode {type(value).__name__} as DAG-CBOR")


def _from_cbor(value: Any, depth: int) -> Any:
    if depth > MAX_NESTING:
        raise DecodeError(f"Value nested deeper than {MAX_NESTING} levels")
    if value is None or isinstance(value, (bool, int, float, str, bytes)):
        return value
    if isinstance(value, cbor2.CBORTag):
        if value.tag != CID_TAG:
            raise DecodeError(f"Unsupported CBOR tag {value.tag}")
        raw = value.value
        if not isinstance(raw, bytes) or not raw.startswith(b"\x00"):
            raise DecodeError("CID tag must wrap 0x00-prefixed bytes")
        try:
            return CID.decode(raw[1:])
        except ValueError as exc:
            raise DecodeError(f"Invalid CID in block: {exc}") from exc
    if isinstance(value, list):
        return [_from_cbor(item, depth + 1) for item in value]
    if isinstance(value, dict):
        out = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise DecodeError(f"Map key {key!r} is not a string")
            out[key] = _from_cbor(item, depth + 1)
        return out
    raise DecodeError(f"Unsupported CBOR value of type {type(value).__name__}")


__all__ = ["CID_TAG", "decode", "encode"]
