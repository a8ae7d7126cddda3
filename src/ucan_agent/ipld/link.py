"""Links — content identifiers (CIDs) naming blocks by the hash of their bytes.

A CIDv1 is ``varint(1) || varint(codec) || multihash`` where the multihash
is ``varint(hash code) || varint(len(digest)) || digest``. Its string form
is base32 with a ``b`` prefix (``bafy...``). Legacy CIDv0 values (a bare
sha2-256 multihash, ``Qm...``) are read but never produced.
"""
from __future__ import annotations

from cryptography.hazmat.primitives import hashes

from ucan_agent.ipld.encoding import (
    b58decode,
    b58encode,
    decode_varint,
    encode_varint,
    from_multibase,
    to_multibase,
)

# multicodec content types
RAW: int = 0x55
DAG_PB: int = 0x70
DAG_CBOR: int = 0x71
CAR: int = 0x0202

# multihash functions
SHA2_256: int = 0x12
SHA2_256_SIZE: int = 32

CODEC_NAMES: dict[int, str] = {
    RAW: "raw",
    DAG_PB: "dag-pb",
    DAG_CBOR: "dag-cbor",
    CAR: "car",
}
CODEC_CODES: dict[str, int] = {name: code for code, name in CODEC_NAMES.items()}

HASH_NAMES: dict[int, str] = {SHA2_256: "sha2-256"}


def sha2_256(data: bytes) -> bytes:
    """Return the ``sha2-256`` multihash of *data*."""
    digest = hashes.Hash(hashes.SHA256())
    digest.update(data)
    return encode_varint(SHA2_256) + encode_varint(SHA2_256_SIZE) + digest.finalize()


class CID:
    """A content identifier.

    Parameters
    ----------
    version:
        ``0`` or ``1``.
    codec:
        Multicodec code of the content, or its name (``"dag-cbor"``).
    multihash:
        The full multihash (function code, length and digest).

    Raises
    ------
    ValueError
        If the version, codec or multihash is malformed.
    """

    __slots__ = ("version", "codec", "multihash", "_bytes")

    def __init__(self, version: int, codec: int | str, multihash: bytes) -> None:
        if isinstance(codec, str):
            if codec not in CODEC_CODES:
                raise ValueError(f"unknown codec {codec!r}")
            codec = CODEC_CODES[codec]
        multihash = bytes(multihash)
        _split_multihash(multihash)
        if version == 0:
            if codec != DAG_PB or not multihash.startswith(b"\x12\x20"):
                raise ValueError("CIDv0 must be a dag-pb sha2-256 link")
            encoded = multihash
        elif version == 1:
            encoded = encode_varint(1) + encode_varint(codec) + multihash
        else:
            raise ValueError(f"unsupported CID version {version}")
        self.version = version
        self.codec = codec
        self.multihash = multihash
        self._bytes = encoded

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    @classmethod
    def decode(cls, value: str | bytes) -> "CID":
        """Parse a CID from its string or binary form.

        Raises
        ------
        ValueError
            If *value* is not a well-formed CID.
        """
        if isinstance(value, str):
            if len(value) == 46 and value.startswith("Qm"):
                return cls.decode(b58decode(value))
            return cls.decode(from_multibase(value))
        data = bytes(value)
        if len(data) == 34 and data.startswith(b"\x12\x20"):
            return cls(0, DAG_PB, data)
        version, offset = decode_varint(data)
        if version != 1:
            raise ValueError(f"unsupported CID version {version}")
        codec, offset = decode_varint(data, offset)
        return cls(1, codec, data[offset:])

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def codec_name(self) -> str:
        return CODEC_NAMES.get(self.codec, f"0x{self.codec:x}")

    @property
    def hash_code(self) -> int:
        return _split_multihash(self.multihash)[0]

    @property
    def digest(self) -> bytes:
        """The raw hash digest, without the multihash header."""
        return _split_multihash(self.multihash)[1]

    # ------------------------------------------------------------------
    # Dunder
    # ------------------------------------------------------------------

    def __bytes__(self) -> bytes:
        return self._bytes

    def __str__(self) -> str:
        if self.version == 0:
            return b58encode(self._bytes)
        return to_multibase(self._bytes, "base32")

    def __repr__(self) -> str:
        return f"CID({str(self)!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, CID) and other._bytes == self._bytes

    def __hash__(self) -> int:
        return hash(self._bytes)


def _split_multihash(multihash: bytes) -> tuple[int, bytes]:
    code, offset = decode_varint(multihash)
    size, offset = decode_varint(multihash, offset)
    digest = multihash[offset:]
    if len(digest) != size:
        raise ValueError(f"multihash declares {size} digest bytes but holds {len(digest)}")
    return code, digest


__all__ = [
    "CAR",
    "CID",
    "DAG_CBOR",
    "DAG_PB",
    "HASH_NAMES",
    "RAW",
    "SHA2_256",
    "sha2_256",
]
