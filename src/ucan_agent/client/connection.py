"""Connection and execute — one batched round-trip to a service.

A :class:`Connection` binds the service principal to the codec that speaks
its wire format and the channel that reaches it. :func:`execute` sends a
batch of invocations and returns the decoded :class:`Response`; it makes
exactly one attempt and leaves retry policy to the caller.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from ucan_agent.errors import BuildError, DecodeError, ExecutionError, TransportError
from ucan_agent.invocation.invocation import Invocation
from ucan_agent.principal.principal import Principal
from ucan_agent.transport.codec import OutboundCodec
from ucan_agent.transport.http import Channel
from ucan_agent.transport.message import Response

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Connection:
    """An immutable handle on a remote service.

    Parameters
    ----------
    id:
        The service principal. Receipts are expected to be issued by it and
        every invocation sent over this connection must name it as audience.
    codec:
        Wire format for requests and responses.
    channel:
        Delivers encoded requests.
    """

    id: Principal
    codec: OutboundCodec
    channel: Channel

    def did(self) -> str:
        return self.id.did()


def connect(principal: Principal, codec: OutboundCodec, channel: Channel) -> Connection:
    """Create a :class:`Connection` to *principal* speaking *codec* over *channel*."""
    return Connection(id=principal, codec=codec, channel=channel)


def execute(invocations: Sequence[Invocation], connection: Connection) -> Response:
    """Send *invocations* as one batch and return the service's response.

    Parameters
    ----------
    invocations:
        Invocations addressed to ``connection.id``. Their order is kept on
        the wire.
    connection:
        Target service.

    Returns
    -------
    Response
        Report of receipt Links keyed by invocation Link. An invocation the
        service did not report on is absent from it.

    Raises
    ------
    BuildError
        If an invocation is addressed to a different principal; nothing is
        sent.
    EncodeError
        If the batch cannot be encoded; nothing is sent.
    ExecutionError
        If the channel fails or the response cannot be decoded. Check
        :attr:`ExecutionError.retryable` to tell the two apart.
    """
    service_did = connection.did()
    for invocation in invocations:
        if invocation.audience != service_did:
            raise BuildError(
                f"Invocation {invocation.link} is addressed to {invocation.audience}, "
                f"not to {service_did}"
            )

    body = connection.codec.encode(invocations)
    logger.info("Executing %d invocation(s) against %s", len(invocations), service_did)
    try:
        data = connection.channel.request(body, content_type=connection.codec.content_type)
        response = connection.codec.decode(data)
    except (TransportError, DecodeError) as exc:
        logger.warning("Execution against %s failed: %s", service_did, exc)
        raise ExecutionError(exc) from exc
    logger.info("Service %s reported %d receipt(s)", service_did, len(response))
    return response


__all__ = ["Connection", "connect", "execute"]
