"""Receipts — signed outcomes of executed invocations.

A receipt block is the DAG-CBOR map::

    {
      "ocm": {
        "ran":  <invocation Link>,
        "out":  {"ok": ...} | {"error": ...},
        "fx":   {"fork": [<Link>, ...], "join"?: <Link>},
        "meta": {...},
        "iss"?: <issuer DID bytes>,
        "prf":  [<Link>, ...],
      },
      "sig": <varsig signature over DAG-CBOR(ocm)>,
    }

``iss`` is present only when the signer is not the invocation's audience.
"""
from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from ucan_agent.did.identifier import did_to_bytes
from ucan_agent.invocation.invocation import Invocation
from ucan_agent.ipld import cbor
from ucan_agent.ipld.block import Block, BlockStore, encode
from ucan_agent.ipld.link import CID
from ucan_agent.principal.principal import Signature, Verifier
from ucan_agent.principal.signer import Signer

O = TypeVar("O")
X = TypeVar("X")

_UNSET: Any = object()


@dataclass(frozen=True)
class Outcome(Generic[O, X]):
    """The result of an invocation: exactly one of ok or error.

    Build with :meth:`success` or :meth:`failure`; exactly one of the
    :attr:`ok` / :attr:`error` accessors returns a value.
    """

    value: Any
    is_ok: bool

    @classmethod
    def success(cls, value: O) -> "Outcome[O, X]":
        return cls(value=value, is_ok=True)

    @classmethod
    def failure(cls, value: X) -> "Outcome[O, X]":
        return cls(value=value, is_ok=False)

    @property
    def ok(self) -> O | None:
        """The success payload, or ``None`` for a failed invocation."""
        return self.value if self.is_ok else None

    @property
    def error(self) -> X | None:
        """The failure payload, or ``None`` for a successful invocation."""
        return None if self.is_ok else self.value

    def to_ipld(self) -> dict[str, Any]:
        """Return the ``out`` map."""
        value = self.value
        if isinstance(value, BaseModel):
            value = value.model_dump(by_alias=True, exclude_none=True)
        return {"ok" if self.is_ok else "error": value}


@dataclass(frozen=True)
class Effects:
    """Follow-up tasks a service reports alongside a receipt."""

    fork: tuple[CID, ...] = ()
    join: CID | None = None

    def to_ipld(self) -> dict[str, Any]:
        value: dict[str, Any] = {"fork": list(self.fork)}
        if self.join is not None:
            value["join"] = self.join
        return value


@dataclass
class Receipt(Generic[O, X]):
    """A decoded, signature-checked receipt.

    Parameters
    ----------
    root:
        The receipt block.
    blocks:
        Store the receipt was read from.
    ran:
        Link of the invocation this receipt reports on.
    out:
        The typed outcome.
    issuer:
        DID of the principal that signed the receipt.
    signature:
        The issuer's signature.
    fx:
        Effects reported by the service.
    meta:
        Free-form metadata.
    proofs:
        Links of delegations the issuer signed under.
    """

    root: Block
    blocks: BlockStore
    ran: CID
    out: Outcome[O, X]
    issuer: str
    signature: Signature
    fx: Effects = field(default_factory=Effects)
    meta: dict[str, Any] = field(default_factory=dict)
    proofs: tuple[CID, ...] = ()

    @property
    def link(self) -> CID:
        return self.root.link

    def invocation(self) -> Invocation | None:
        """Return the invocation that ran, when its block is held."""
        block = self.blocks.find(self.ran)
        return Invocation(block, self.blocks) if block is not None else None

    def iterate_blocks(self) -> Iterator[Block]:
        """Yield the ran invocation's blocks (when held), then the receipt."""
        invocation = self.invocation()
        if invocation is not None:
            yield from invocation.iterate_blocks()
        yield self.root


def issue_receipt(
    signer: Signer,
    ran: Invocation | CID,
    *,
    ok: Any = _UNSET,
    error: Any = _UNSET,
    fork: Sequence[CID] = (),
    join: CID | None = None,
    meta: dict[str, Any] | None = None,
    proofs: Sequence[CID] = (),
) -> Receipt[Any, Any]:
    """Sign a receipt for *ran*. Service-side counterpart of the reader.

    Exactly one of *ok* / *error* must be given. Pydantic models are dumped
    by alias.

    Raises
    ------
    ValueError
        If both or neither of *ok* and *error* are given.
    """
    if (ok is _UNSET) == (error is _UNSET):
        raise ValueError("A receipt needs exactly one of ok or error")
    out: Outcome[Any, Any] = Outcome.success(ok) if ok is not _UNSET else Outcome.failure(error)
    fx = Effects(fork=tuple(fork), join=join)
    ran_link = ran.link if isinstance(ran, Invocation) else ran

    ocm: dict[str, Any] = {
        "ran": ran_link,
        "out": out.to_ipld(),
        "fx": fx.to_ipld(),
        "meta": dict(meta or {}),
        "prf": list(proofs),
    }
    if not isinstance(ran, Invocation) or ran.audience != signer.did():
        ocm["iss"] = did_to_bytes(signer.did())

    signature = signer.sign(cbor.encode(ocm))
    root = encode({"ocm": ocm, "sig": signature.encode()})
    blocks = BlockStore()
    if isinstance(ran, Invocation):
        blocks.update(ran.iterate_blocks())
    blocks.put(root)
    return Receipt(
        root=root,
        blocks=blocks,
        ran=ran_link,
        out=out,
        issuer=signer.did(),
        signature=signature,
        fx=fx,
        meta=ocm["meta"],
        proofs=tuple(proofs),
    )


def verify_receipt_signature(ocm: dict[str, Any], signature: Signature, verifier: Verifier) -> bool:
    """Return True if *signature* over the encoded *ocm* map was made by *verifier*."""
    return verifier.verify(cbor.encode(ocm), signature)


__all__ = [
    "Effects",
    "Outcome",
    "Receipt",
    "issue_receipt",
    "verify_receipt_signature",
]
