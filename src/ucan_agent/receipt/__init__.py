"""Receipts: signed, typed outcomes correlated to invocations by Link."""
from __future__ import annotations

from ucan_agent.receipt.reader import ReceiptReader
from ucan_agent.receipt.receipt import Effects, Outcome, Receipt, issue_receipt

__all__ = ["Effects", "Outcome", "Receipt", "ReceiptReader", "issue_receipt"]
