"""Exception hierarchy for ucan-agent.

Every error raised by the protocol core derives from :class:`UcanAgentError`
so a host process can catch the whole family in one place and classify the
individual subclasses as retryable or fatal.

A receipt whose outcome is an error is *not* represented here: that is a
successful round-trip carrying an application-level failure, returned as
data on :class:`~ucan_agent.receipt.receipt.Outcome`.
"""
from __future__ import annotations


class UcanAgentError(Exception):
    """Base class for all ucan-agent errors."""


class ConfigError(UcanAgentError):
    """Raised when required configuration is missing or malformed."""


class ParseError(UcanAgentError, ValueError):
    """Raised when a DID or resource identifier string is malformed."""


class SigningError(UcanAgentError):
    """Raised when secret key material cannot be parsed."""


class DecodeError(UcanAgentError):
    """Raised when content-addressed bytes are malformed or fail verification."""


class BlockNotFoundError(DecodeError, KeyError):
    """Raised when a Link does not resolve within a block store."""

    def __init__(self, link: object) -> None:
        self.link = link
        super().__init__(f"Block {link} not found in store")

    def __str__(self) -> str:
        return f"Block {self.link} not found in store"


class InvalidSignatureError(DecodeError):
    """Raised when a signature does not verify against its claimed issuer."""


class BuildError(UcanAgentError):
    """Raised when an invocation cannot be constructed."""


class EncodeError(UcanAgentError):
    """Raised when a batch cannot be encoded for the wire."""


class SchemaError(UcanAgentError):
    """Raised when a receipt reader is given an unusable payload schema."""


class TransportError(UcanAgentError):
    """Raised when the channel fails to deliver a request or read a response.

    Parameters
    ----------
    message:
        Human-readable description of the failure.
    status_code:
        HTTP status code when the service answered with a non-2xx status,
        otherwise ``None``.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class ExecutionError(UcanAgentError):
    """Wraps a transport or decode failure raised while executing a batch.

    Parameters
    ----------
    cause:
        The underlying :class:`TransportError` or :class:`DecodeError`.
    """

    def __init__(self, cause: TransportError | DecodeError) -> None:
        self.cause = cause
        super().__init__(f"Execution failed: {cause}")

    @property
    def retryable(self) -> bool:
        """True when the failure happened in the channel, not in decoding."""
        return isinstance(self.cause, TransportError)


class DelegationChainError(UcanAgentError):
    """Raised when a delegation chain constraint is violated."""


__all__ = [
    "BlockNotFoundError",
    "BuildError",
    "ConfigError",
    "DecodeError",
    "DelegationChainError",
    "EncodeError",
    "ExecutionError",
    "InvalidSignatureError",
    "ParseError",
    "SchemaError",
    "SigningError",
    "TransportError",
    "UcanAgentError",
]
