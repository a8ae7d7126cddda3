"""HTTP channel — delivers encoded request bytes and returns response bytes.

The channel knows nothing about UCANs: it POSTs a body with a content type
and hands back whatever the service answered, within a time and size
budget. Every failure surfaces as :class:`~ucan_agent.errors.TransportError`.
"""
from __future__ import annotations

import logging
from types import TracebackType
from typing import Protocol

import httpx

from ucan_agent.errors import TransportError
from ucan_agent.transport.codec import MAX_RESPONSE_SIZE

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT: float = 30.0


class Channel(Protocol):
    """Anything that can carry one request and return one response body."""

    def request(self, body: bytes, *, content_type: str, timeout: float | None = None) -> bytes:
        ...


class HTTPChannel:
    """POST request archives to a single service endpoint.

    Parameters
    ----------
    url:
        Service endpoint.
    timeout:
        Default per-request deadline in seconds.
    max_response_size:
        Largest response body read before aborting.
    headers:
        Extra headers sent with every request.
    client:
        An existing :class:`httpx.Client`. When given, the caller owns it and
        :meth:`close` leaves it open.

    Example
    -------
    ::

        with HTTPChannel("https://up.web3.storage") as channel:
            data = channel.request(body, content_type="application/vnd.ipld.car")
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        max_response_size: int = MAX_RESPONSE_SIZE,
        headers: dict[str, str] | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        if timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout}")
        self.url = url
        self.timeout = timeout
        self.max_response_size = max_response_size
        self.headers = dict(headers or {})
        self._owns_client = client is None
        self._client = client if client is not None else httpx.Client()

    def request(self, body: bytes, *, content_type: str, timeout: float | None = None) -> bytes:
        """Send *body* and return the response body.

        Parameters
        ----------
        body:
            Encoded request.
        content_type:
            Sent as both ``Content-Type`` and ``Accept``.
        timeout:
            Overrides the channel's default deadline for this request.

        Raises
        ------
        TransportError
            On connection failure, timeout, a non-2xx status, or a body
            larger than ``max_response_size``.
        """
        headers = {**self.headers, "content-type": content_type, "accept": content_type}
        deadline = timeout if timeout is not None else self.timeout
        logger.debug("POST %s (%d bytes)", self.url, len(body))
        try:
            with self._client.stream(
                "POST", self.url, content=body, headers=headers, timeout=deadline
            ) as response:
                if not response.is_success:
                    raise TransportError(
                        f"Service at {self.url} answered HTTP {response.status_code}",
                        status_code=response.status_code,
                    )
                declared = response.headers.get("content-length")
                if declared is not None and declared.isdigit() and int(declared) > self.max_response_size:
                    raise TransportError(
                        f"Response of {declared} bytes exceeds the {self.max_response_size} byte limit"
                    )
                data = bytearray()
                for chunk in response.iter_bytes():
                    data.extend(chunk)
                    if len(data) > self.max_response_size:
                        raise TransportError(
                            f"Response exceeds the {self.max_response_size} byte limit"
                        )
        except httpx.TimeoutException as exc:
            raise TransportError(f"Request to {self.url} timed out after {deadline}s") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"Request to {self.url} failed: {exc}") from exc
        logger.debug("Received %d bytes from %s", len(data), self.url)
        return bytes(data)

    def close(self) -> None:
        """Close the underlying client if this channel created it."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "HTTPChannel":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"HTTPChannel(url={self.url!r}, timeout={self.timeout})"


__all__ = ["Channel", "DEFAULT_TIMEOUT", "HTTPChannel"]
