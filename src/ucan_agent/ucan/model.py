"""UCAN token data shared by delegations and invocations.

A UCAN is stored as one DAG-CBOR block:

=====  ==========================================================
key    meaning
=====  ==========================================================
v      UCAN version (``"0.9.1"``)
iss    issuer DID (binary form)
aud    audience DID (binary form)
att    list of capability maps
exp    expiry in unix seconds, or null for no expiry
nbf    optional not-before, unix seconds
iat    optional issuance time, unix seconds
nnc    optional nonce
fct    list of fact maps
prf    list of proof Links
s      varsig-encoded Ed25519 signature
=====  ==========================================================

The signature covers the DAG-CBOR encoding of the map without ``s``.
"""
from __future__ import annotations

import datetime
from collections.abc import Sequence
from dataclasses import dataclass, replace
from typing import Any

from ucan_agent.did.identifier import did_from_bytes, did_to_bytes
from ucan_agent.errors import DecodeError, EncodeError, ParseError
from ucan_agent.ipld import cbor
from ucan_agent.ipld.link import CID
from ucan_agent.principal.principal import Signature
from ucan_agent.principal.signer import Signer
from ucan_agent.ucan.capability import Capability

UCAN_VERSION: str = "0.9.1"


def now_seconds() -> int:
    """Return the current UTC time in whole unix seconds."""
    return int(datetime.datetime.now(datetime.timezone.utc).timestamp())


@dataclass(frozen=True)
class UCANData:
    """The fields of a signed UCAN.

    Parameters
    ----------
    issuer:
        DID of the signing principal.
    audience:
        DID of the principal the UCAN is addressed to.
    capabilities:
        Capabilities granted (delegation) or exercised (invocation).
    expiration:
        Unix seconds after which the UCAN is invalid, or ``None``.
    proofs:
        Links of the delegations that authorise this UCAN.
    not_before:
        Unix seconds before which the UCAN is invalid, or ``None``.
    issued_at:
        Unix seconds at which the UCAN was issued, or ``None``.
    nonce:
        Optional nonce making otherwise identical UCANs distinct.
    facts:
        Arbitrary fact maps.
    signature:
        Issuer's signature over :meth:`signing_bytes`.
    version:
        UCAN version string.
    """

    issuer: str
    audience: str
    capabilities: tuple[Capability, ...]
    expiration: int | None
    proofs: tuple[CID, ...] = ()
    not_before: int | None = None
    issued_at: int | None = None
    nonce: str | None = None
    facts: tuple[dict[str, Any], ...] = ()
    signature: Signature | None = None
    version: str = UCAN_VERSION

    # ------------------------------------------------------------------
    # Encoding
    # ------------------------------------------------------------------

    def payload(self) -> dict[str, Any]:
        """Return the signable map (everything except ``s``)."""
        value: dict[str, Any] = {
            "v": self.version,
            "iss": did_to_bytes(self.issuer),
            "aud": did_to_bytes(self.audience),
            "att": [capability.to_ipld() for capability in self.capabilities],
            "exp": self.expiration,
            "fct": [dict(fact) for fact in self.facts],
            "prf": list(self.proofs),
        }
        if self.not_before is not None:
            value["nbf"] = self.not_before
        if self.issued_at is not None:
            value["iat"] = self.issued_at
        if self.nonce is not None:
            value["nnc"] = self.nonce
        return value

    def signing_bytes(self) -> bytes:
        """Return the canonical bytes the issuer signs.

        Raises
        ------
        EncodeError
            If a capability's caveats or a fact cannot be represented in
            DAG-CBOR.
        """
        try:
            return cbor.encode(self.payload())
        except EncodeError as exc:
            raise EncodeError(f"UCAN payload cannot be encoded: {exc}") from exc

    def to_ipld(self) -> dict[str, Any]:
        """Return the full block map including the signature."""
        if self.signature is None:
            raise ValueError("UCAN has not been signed")
        value = self.payload()
        value["s"] = self.signature.encode()
        return value

    @classmethod
    def from_ipld(cls, value: object) -> "UCANData":
        """Rebuild UCAN data from a decoded block.

        Raises
        ------
        DecodeError
            If a required field is missing or has the wrong type.
        """
        if not isinstance(value, dict):
            raise DecodeError(f"UCAN block must be a map, got {type(value).__name__}")
        try:
            version = value["v"]
            issuer = did_from_bytes(_expect(value, "iss", bytes))
            audience = did_from_bytes(_expect(value, "aud", bytes))
            attenuations = _expect(value, "att", list)
            proofs = _expect(value, "prf", list)
            facts = value.get("fct", [])
            signature = Signature.decode(_expect(value, "s", bytes))
        except KeyError as exc:
            raise DecodeError(f"UCAN block is missing field {exc}") from exc
        except ParseError as exc:
            raise DecodeError(f"UCAN block holds an invalid DID: {exc}") from exc
        if not isinstance(version, str):
            raise DecodeError("UCAN 'v' must be a string")
        if not all(isinstance(proof, CID) for proof in proofs):
            raise DecodeError("UCAN 'prf' must be a list of Links")
        if not isinstance(facts, list) or not all(isinstance(f, dict) for f in facts):
            raise DecodeError("UCAN 'fct' must be a list of maps")
        for key in ("exp", "nbf", "iat"):
            if value.get(key) is not None and not isinstance(value[key], int):
                raise DecodeError(f"UCAN {key!r} must be an integer")
        if "exp" not in value:
            raise DecodeError("UCAN block is missing field 'exp'")
        nonce = value.get("nnc")
        if nonce is not None and not isinstance(nonce, str):
            raise DecodeError("UCAN 'nnc' must be a string")
        return cls(
            issuer=issuer,
            audience=audience,
            capabilities=tuple(Capability.from_ipld(att) for att in attenuations),
            expiration=value["exp"],
            proofs=tuple(proofs),
            not_before=value.get("nbf"),
            issued_at=value.get("iat"),
            nonce=nonce,
            facts=tuple(facts),
            signature=signature,
            version=version,
        )

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def is_expired(self, now: int | None = None) -> bool:
        """Return True if the UCAN has passed its expiry time."""
        if self.expiration is None:
            return False
        return (now if now is not None else now_seconds()) > self.expiration

    def is_too_early(self, now: int | None = None) -> bool:
        """Return True if the UCAN's not-before time is still in the future."""
        if self.not_before is None:
            return False
        return (now if now is not None else now_seconds()) < self.not_before


def issue(
    issuer: Signer,
    audience: str,
    capabilities: Sequence[Capability],
    *,
    expiration: int | None,
    proofs: Sequence[CID] = (),
    not_before: int | None = None,
    issued_at: int | None = None,
    nonce: str | None = None,
    facts: Sequence[dict[str, Any]] = (),
) -> UCANData:
    """Build and sign UCAN data with *issuer*'s key."""
    unsigned = UCANData(
        issuer=issuer.did(),
        audience=audience,
        capabilities=tuple(capabilities),
        expiration=expiration,
        proofs=tuple(proofs),
        not_before=not_before,
        issued_at=issued_at,
        nonce=nonce,
        facts=tuple(facts),
    )
    return replace(unsigned, signature=issuer.sign(unsigned.signing_bytes()))


def _expect(value: dict[str, Any], key: str, kind: type) -> Any:
    item = value[key]
    if not isinstance(item, kind):
        raise DecodeError(f"UCAN {key!r} must be {kind.__name__}, got {type(item).__name__}")
    return item


__all__ = ["UCAN_VERSION", "UCANData", "issue", "now_seconds"]
