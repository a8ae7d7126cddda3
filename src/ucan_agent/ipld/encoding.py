"""Unsigned varints and the multibase string encodings used by DIDs and Links.

Only the bases the protocol needs are supported:

==========  ======  =============================================
Name        Prefix  Used for
==========  ======  =============================================
base58btc   ``z``   ``did:key`` identifiers
base32      ``b``   CIDv1 string form
base64pad   ``M``   agent secret keys
base64      ``m``   accepted on input
==========  ======  =============================================
"""
from __future__ import annotations

import base64
import binascii

# unsigned-varint caps encodings at 9 bytes (63 bits)
MAX_VARINT_BYTES: int = 9


def encode_varint(value: int) -> bytes:
    """Encode a non-negative integer as an unsigned LEB128 varint."""
    if value < 0:
        raise ValueError(f"varint must be non-negative, got {value}")
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def decode_varint(data: bytes | memoryview, offset: int = 0) -> tuple[int, int]:
    """Decode the varint at *offset*.

    Returns
    -------
    tuple[int, int]
        ``(value, offset_after)``.

    Raises
    ------
    ValueError
        If the varint is truncated, longer than :data:`MAX_VARINT_BYTES`, or
        not minimally encoded.
    """
    value = 0
    shift = 0
    for index in range(MAX_VARINT_BYTES):
        position = offset + index
        if position >= len(data):
            raise ValueError("truncated varint")
        byte = data[position]
        value |= (byte & 0x7F) << shift
        if not byte & 0x80:
            if byte == 0 and index > 0:
                raise ValueError("varint is not minimally encoded")
            return value, position + 1
        shift += 7
    raise ValueError(f"varint longer than {MAX_VARINT_BYTES} bytes")


# ---------------------------------------------------------------------------
# Base58btc
# ---------------------------------------------------------------------------

_BASE58_ALPHABET: str = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"


def b58encode(data: bytes) -> str:
    """Encode *data* as base58btc, keeping leading zero bytes as ``1``."""
    n = int.from_bytes(data, "big")
    result: list[str] = []
    while n > 0:
        n, remainder = divmod(n, 58)
        result.append(_BASE58_ALPHABET[remainder])
    for byte in data:
        if byte != 0:
            break
        result.append("1")
    return "".join(reversed(result))


def b58decode(encoded: str) -> bytes:
    """Decode a base58btc string.

    Raises
    ------
    ValueError
        If the string contains a character outside the base58btc alphabet.
    """
    n = 0
    for char in encoded:
        index = _BASE58_ALPHABET.find(char)
        if index < 0:
            raise ValueError(f"invalid base58btc character {char!r}")
        n = n * 58 + index
    result = n.to_bytes((n.bit_length() + 7) // 8, "big") if n > 0 else b""
    pad_size = len(encoded) - len(encoded.lstrip("1"))
    return b"\x00" * pad_size + result


# ---------------------------------------------------------------------------
# Multibase
# ---------------------------------------------------------------------------


def _b32encode(data: bytes) -> str:
    return base64.b32encode(data).decode("ascii").lower().rstrip("=")


def _b32decode(text: str) -> bytes:
    padding = "=" * (-len(text) % 8)
    return base64.b32decode(text.upper() + padding)


def _b64decode(text: str) -> bytes:
    padding = "=" * (-len(text) % 4)
    return base64.b64decode(text + padding, validate=True)


_ENCODERS = {
    "base58btc": ("z", b58encode),
    "base32": ("b", _b32encode),
    "base64pad": ("M", lambda data: base64.b64encode(data).decode("ascii")),
    "base64": ("m", lambda data: base64.b64encode(data).decode("ascii").rstrip("=")),
}

_DECODERS = {
    "z": b58decode,
    "b": _b32decode,
    "M": lambda text: base64.b64decode(text, validate=True),
    "m": _b64decode,
}


def to_multibase(data: bytes, base: str) -> str:
    """Encode *data* in *base* and prepend its multibase prefix."""
    try:
        prefix, encoder = _ENCODERS[base]
    except KeyError:
        raise ValueError(f"unsupported multibase encoding {base!r}") from None
    return prefix + encoder(bytes(data))


def from_multibase(text: str) -> bytes:
    """Decode a multibase string.

    Raises
    ------
    ValueError
        If the prefix is unknown or the payload is not valid in its base.
    """
    if not text:
        raise ValueError("empty multibase string")
    decoder = _DECODERS.get(text[0])
    if decoder is None:
        raise ValueError(f"unsupported multibase prefix {text[0]!r}")
    try:
        return bytes(decoder(text[1:]))
    except (ValueError, binascii.Error) as exc:
        raise ValueError(f"invalid multibase payload: {exc}") from exc


__all__ = [
    "MAX_VARINT_BYTES",
    "b58decode",
    "b58encode",
    "decode_varint",
    "encode_varint",
    "from_multibase",
    "to_multibase",
]
