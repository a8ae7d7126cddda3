"""CAR codecs — wire encoding, independent of how bytes are delivered.

:class:`CAROutboundCodec` is the client side: it turns a batch of
invocations into request bytes and response bytes into a
:class:`~ucan_agent.transport.message.Response`. :class:`CARInboundCodec`
is the service side mirror.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Protocol

from ucan_agent.invocation.invocation import Invocation
from ucan_agent.ipld import car
from ucan_agent.receipt.receipt import Receipt
from ucan_agent.transport.message import (
    Response,
    build_report,
    build_request,
    read_report,
    read_request,
)

logger = logging.getLogger(__name__)

CAR_CONTENT_TYPE: str = "application/vnd.ipld.car"
MAX_RESPONSE_SIZE: int = 32 * 1024 * 1024


class OutboundCodec(Protocol):
    """Client-side wire format."""

    content_type: str

    def encode(self, invocations: Sequence[Invocation]) -> bytes:
        ...

    def decode(self, data: bytes) -> Response:
        ...


class CAROutboundCodec:
    """Encode invocation batches as CAR archives and decode CAR responses.

    Parameters
    ----------
    max_response_size:
        Largest response archive accepted, in bytes.
    """

    content_type: str = CAR_CONTENT_TYPE

    def __init__(self, max_response_size: int = MAX_RESPONSE_SIZE) -> None:
        self.max_response_size = max_response_size

    def encode(self, invocations: Sequence[Invocation]) -> bytes:
        """Serialise *invocations* and the transitive closure of their proofs.

        Raises
        ------
        EncodeError
            If a proof is missing or cyclic.
        """
        root, blocks = build_request(invocations)
        data = car.encode([root.link], [*blocks, root])
        logger.debug("Encoded %d invocation(s) into %d bytes", len(invocations), len(data))
        return data

    def decode(self, data: bytes) -> Response:
        """Parse response bytes.

        Raises
        ------
        DecodeError
            If the archive is malformed, oversized, or not a report.
        """
        archive = car.decode(data, max_size=self.max_response_size)
        return read_report(archive)


class CARInboundCodec:
    """Service-side codec: decode request archives, encode receipt reports."""

    content_type: str = CAR_CONTENT_TYPE

    def __init__(self, max_request_size: int = car.MAX_ARCHIVE_SIZE) -> None:
        self.max_request_size = max_request_size

    def decode(self, data: bytes) -> list[Invocation]:
        """Return the invocations carried by a request archive."""
        archive = car.decode(data, max_size=self.max_request_size)
        return read_request(archive)

    def encode(self, receipts: Sequence[Receipt[Any, Any]]) -> bytes:
        """Serialise *receipts* and a report indexing them by invocation."""
        root, blocks = build_report(receipts)
        return car.encode([root.link], [*blocks, root])


__all__ = [
    "CARInboundCodec",
    "CAROutboundCodec",
    "CAR_CONTENT_TYPE",
    "MAX_RESPONSE_SIZE",
    "OutboundCodec",
]
