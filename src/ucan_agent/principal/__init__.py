"""Principals: signers, verifiers, and DIDs that only identify."""
from __future__ import annotations

from ucan_agent.principal.principal import Principal, Signature, Verifier, parse
from ucan_agent.principal.signer import Signer

__all__ = ["Principal", "Signature", "Signer", "Verifier", "parse"]
