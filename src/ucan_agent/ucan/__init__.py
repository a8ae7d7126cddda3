"""UCAN primitives shared by delegations and invocations."""
from __future__ import annotations

from ucan_agent.ucan.capability import Capability, is_valid_resource, validate_resource
from ucan_agent.ucan.model import UCAN_VERSION, UCANData, issue, now_seconds

__all__ = [
    "Capability",
    "UCANData",
    "UCAN_VERSION",
    "is_valid_resource",
    "issue",
    "now_seconds",
    "validate_resource",
]
