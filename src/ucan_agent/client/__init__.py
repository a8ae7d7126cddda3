"""Client: connections to a service and batched execution."""
from __future__ import annotations

from ucan_agent.client.connection import Connection, connect, execute

__all__ = ["Connection", "connect", "execute"]
