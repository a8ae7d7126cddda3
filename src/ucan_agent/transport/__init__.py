"""Transport: wire codecs and the HTTP channel.

A round-trip is ``codec.encode`` -> ``channel.request`` -> ``codec.decode``.
The codec owns the bytes, the channel owns delivery.
"""
from __future__ import annotations

from ucan_agent.transport.codec import (
    CAR_CONTENT_TYPE,
    MAX_RESPONSE_SIZE,
    CARInboundCodec,
    CAROutboundCodec,
    OutboundCodec,
)
from ucan_agent.transport.http import Channel, HTTPChannel
from ucan_agent.transport.message import MESSAGE_TAG, Response

__all__ = [
    "CAR_CONTENT_TYPE",
    "CARInboundCodec",
    "CAROutboundCodec",
    "Channel",
    "HTTPChannel",
    "MAX_RESPONSE_SIZE",
    "MESSAGE_TAG",
    "OutboundCodec",
    "Response",
]
