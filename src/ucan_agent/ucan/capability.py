"""Capability descriptors: ``(ability, resource, caveats)``.

The wire form is the UCAN attenuation map ``{"can", "with", "nb"}``.
Caveats are opaque to the protocol core: they are either a plain mapping
or a pydantic model supplied by a capability-specific module, dumped by
alias with ``None`` fields dropped.
"""
from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

from ucan_agent.errors import DecodeError, ParseError

# URI: scheme ":" non-empty remainder (RFC 3986 section 3.1 for the scheme)
_RESOURCE_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*:\S+$")


def is_valid_resource(resource: str) -> bool:
    """Return True if *resource* is syntactically a URI."""
    return isinstance(resource, str) and bool(_RESOURCE_PATTERN.match(resource))


def validate_resource(resource: str) -> str:
    """Return *resource* unchanged or raise :class:`ParseError`."""
    if not is_valid_resource(resource):
        raise ParseError(f"Invalid resource identifier {resource!r}: expected a URI")
    return resource


@dataclass(frozen=True)
class Capability:
    """A capability: the right to perform *ability* on *resource*.

    Parameters
    ----------
    ability:
        Namespaced action string, e.g. ``"upload/list"``, or ``"*"``.
    resource:
        URI of the resource, e.g. a space DID.
    caveats:
        Ability-specific restrictions. A mapping or a pydantic model.
        The resource is not validated here; :func:`~ucan_agent.invocation.invoke`
        rejects invalid resources with :class:`~ucan_agent.errors.BuildError`.
    """

    ability: str
    resource: str
    caveats: Mapping[str, Any] | BaseModel = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.ability or any(ch.isspace() for ch in self.ability):
            raise ValueError(f"Capability.ability must be a non-empty token, got {self.ability!r}")

    def nb(self) -> dict[str, Any]:
        """Return the caveats as a plain dictionary."""
        if isinstance(self.caveats, BaseModel):
            return self.caveats.model_dump(by_alias=True, exclude_none=True)
        return dict(self.caveats)

    def to_ipld(self) -> dict[str, Any]:
        """Return the DAG-CBOR attenuation map."""
        value: dict[str, Any] = {"can": self.ability, "with": self.resource}
        nb = self.nb()
        if nb:
            value["nb"] = nb
        return value

    @classmethod
    def from_ipld(cls, value: object) -> "Capability":
        """Rebuild a capability from its attenuation map.

        Raises
        ------
        DecodeError
            If the map is missing ``can``/``with`` or has the wrong types.
        """
        if not isinstance(value, dict):
            raise DecodeError(f"Capability must be a map, got {type(value).__name__}")
        ability = value.get("can")
        resource = value.get("with")
        nb = value.get("nb", {})
        if not isinstance(ability, str) or not isinstance(resource, str):
            raise DecodeError("Capability requires string 'can' and 'with' fields")
        if not isinstance(nb, dict):
            raise DecodeError("Capability 'nb' must be a map")
        try:
            return cls(ability=ability, resource=resource, caveats=nb)
        except ValueError as exc:
            raise DecodeError(str(exc)) from exc


__all__ = ["Capability", "is_valid_resource", "validate_resource"]
