"""Signed, capability-scoped invocations."""
from __future__ import annotations

from ucan_agent.invocation.invocation import DEFAULT_LIFETIME, Invocation, invoke

__all__ = ["DEFAULT_LIFETIME", "Invocation", "invoke"]
