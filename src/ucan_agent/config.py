"""Agent configuration, read from the environment.

========================  ===========================  =====================
Variable                  Meaning                      Default
========================  ===========================  =====================
``W3UP_PRIVATE_KEY``      Agent secret (multibase)     required
``W3UP_SERVICE_URL``      Service endpoint             ``https://up.web3.storage``
``W3UP_SERVICE_DID``      Service DID                  ``did:web:web3.storage``
``W3UP_SERVICE_KEY``      ``did:key`` the service      unset
                          signs receipts with
``W3UP_TIMEOUT``          Request deadline, seconds    ``30``
========================  ===========================  =====================

Receipts from a non-key service DID such as ``did:web:web3.storage`` can only
be verified when ``W3UP_SERVICE_KEY`` is set.

Loading never exits the process: problems are raised as
:class:`~ucan_agent.errors.ConfigError` for the caller to report.
"""
from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, field_validator

from ucan_agent.did.did_key import validate_did_key_format
from ucan_agent.did.identifier import parse_did
from ucan_agent.errors import ConfigError
from ucan_agent.principal.principal import Principal, Verifier, parse
from ucan_agent.principal.signer import Signer

DEFAULT_SERVICE_URL: str = "https://up.web3.storage"
DEFAULT_SERVICE_DID: str = "did:web:web3.storage"
DEFAULT_TIMEOUT: float = 30.0

_ENV_VARS: dict[str, str] = {
    "private_key": "W3UP_PRIVATE_KEY",
    "service_url": "W3UP_SERVICE_URL",
    "service_did": "W3UP_SERVICE_DID",
    "service_key": "W3UP_SERVICE_KEY",
    "timeout": "W3UP_TIMEOUT",
}


class AgentSettings(BaseModel):
    """Validated agent settings.

    Parameters
    ----------
    private_key:
        The agent's multibase-encoded Ed25519 secret.
    service_url:
        HTTP(S) endpoint invocations are POSTed to.
    service_did:
        DID of the service; invocations are addressed to it.
    service_key:
        Optional ``did:key`` the service signs receipts with. Needed to
        check receipt signatures when *service_did* is not a ``did:key``.
    timeout:
        Per-request deadline in seconds.
    """

    model_config = ConfigDict(frozen=True)

    private_key: SecretStr
    service_url: str = DEFAULT_SERVICE_URL
    service_did: str = DEFAULT_SERVICE_DID
    service_key: Optional[str] = None
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)

    @field_validator("private_key")
    @classmethod
    def validate_private_key(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value().strip():
            raise ValueError("private key must not be empty")
        return value

    @field_validator("service_url")
    @classmethod
    def validate_service_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"service URL must be http or https, got {value!r}")
        return value

    @field_validator("service_did")
    @classmethod
    def validate_service_did(cls, value: str) -> str:
        return parse_did(value)

    @field_validator("service_key")
    @classmethod
    def validate_service_key(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            validate_did_key_format(value)
            parse_did(value)
        return value

    def signer(self) -> Signer:
        """Parse the agent's secret.

        Raises
        ------
        SigningError
            If the key material is malformed.
        """
        return Signer.parse(self.private_key.get_secret_value().strip())

    def service(self) -> Principal:
        """The service principal, able to verify receipts when a key is known."""
        if self.service_key is not None:
            return Verifier.from_did_key(self.service_key).with_did(self.service_did)
        return parse(self.service_did)


def load_settings(environ: Optional[Mapping[str, str]] = None) -> AgentSettings:
    """Build :class:`AgentSettings` from *environ* (defaults to ``os.environ``).

    Empty variables are treated as unset.

    Raises
    ------
    ConfigError
        If ``W3UP_PRIVATE_KEY`` is missing or any value is malformed.
    """
    env = os.environ if environ is None else environ
    values = {field: env[var] for field, var in _ENV_VARS.items() if env.get(var, "").strip()}
    if "private_key" not in values:
        raise ConfigError(f"{_ENV_VARS['private_key']} is not set")
    try:
        return AgentSettings(**values)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {_describe(exc)}") from exc


def _describe(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        field = str(error["loc"][0]) if error["loc"] else ""
        problems.append(f"{_ENV_VARS.get(field, field or 'settings')}: {error['msg']}")
    return "; ".join(problems)


__all__ = [
    "AgentSettings",
    "DEFAULT_SERVICE_DID",
    "DEFAULT_SERVICE_URL",
    "DEFAULT_TIMEOUT",
    "load_settings",
]
