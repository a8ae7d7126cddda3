"""ReceiptReader — typed receipt decoding for one capability.

Each capability has its own success and failure payload shapes, so a
reader is built per capability from a pair of schemas. A schema is a
pydantic model class, a :class:`pydantic.TypeAdapter`, or any type pydantic
can build an adapter for (``dict``, ``list[str]``, a ``TypedDict``...).
"""
from __future__ import annotations

import logging
from typing import Any, Generic, TypeVar

from pydantic import TypeAdapter, ValidationError

from ucan_agent.did.did_key import DID_KEY_PREFIX
from ucan_agent.did.identifier import did_from_bytes
from ucan_agent.errors import DecodeError, InvalidSignatureError, ParseError, SchemaError
from ucan_agent.invocation.invocation import Invocation
from ucan_agent.ipld.block import BlockStore
from ucan_agent.ipld.link import CID
from ucan_agent.principal.principal import Principal, Signature, Verifier
from ucan_agent.receipt.receipt import Effects, Outcome, Receipt, verify_receipt_signature

logger = logging.getLogger(__name__)

O = TypeVar("O")
X = TypeVar("X")


def _adapter(schema: Any, role: str) -> TypeAdapter[Any]:
    if isinstance(schema, TypeAdapter):
        return schema
    if schema is None:
        raise SchemaError(f"The {role} schema must not be None")
    try:
        return TypeAdapter(schema)
    except (TypeError, ValueError) as exc:
        raise SchemaError(f"Cannot build a {role} schema from {schema!r}: {exc}") from exc


class ReceiptReader(Generic[O, X]):
    """Reads receipts whose payloads match a capability's schemas.

    Parameters
    ----------
    ok_schema:
        Shape of the success payload.
    error_schema:
        Shape of the failure payload.

    Raises
    ------
    SchemaError
        If either schema cannot be turned into a pydantic adapter.

    Example
    -------
    ::

        reader = ReceiptReader(UploadListSuccess, UploadListFailure)
        receipt_link = response.get(invocation.link)
        if receipt_link is not None:
            receipt = reader.read(receipt_link, response.blocks)
    """

    def __init__(self, ok_schema: Any, error_schema: Any) -> None:
        self._ok = _adapter(ok_schema, "ok")
        self._error = _adapter(error_schema, "error")

    def read(
        self,
        link: CID,
        blocks: BlockStore,
        service: Principal | None = None,
    ) -> Receipt[O, X]:
        """Decode and verify the receipt at *link*.

        Parameters
        ----------
        link:
            Receipt Link, as returned by :meth:`Response.get`.
        blocks:
            Store holding the receipt block.
        service:
            The principal expected to have signed the receipt. When it is a
            :class:`Verifier` its key is used; otherwise the issuer must be
            a ``did:key``.

        Raises
        ------
        DecodeError
            If the block is absent or malformed, the outcome is neither ok
            nor error, the issuer is not *service*, the signature does not
            verify, or a payload does not match its schema.
        """
        block = blocks.get(link)
        value = block.decode()
        if not isinstance(value, dict) or not isinstance(value.get("ocm"), dict):
            raise DecodeError(f"Receipt {link} has no outcome map")
        ocm: dict[str, Any] = value["ocm"]
        raw_signature = value.get("sig")
        if not isinstance(raw_signature, bytes):
            raise DecodeError(f"Receipt {link} is missing its signature")
        signature = Signature.decode(raw_signature)

        ran = ocm.get("ran")
        if not isinstance(ran, CID):
            raise DecodeError(f"Receipt {link} does not name the invocation it ran")
        out = ocm.get("out")
        if not isinstance(out, dict) or len(out) != 1 or next(iter(out)) not in ("ok", "error"):
            raise DecodeError(f"Receipt {link} outcome must be exactly one of ok or error")

        issuer = self._issuer(ocm, ran, blocks, service, link)
        verifier = self._verifier(issuer, service, link)
        if verifier is None:
            logger.warning("Cannot check signature of receipt %s: no key for %s", link, issuer)
        elif not verify_receipt_signature(ocm, signature, verifier):
            raise InvalidSignatureError(f"Signature on receipt {link} does not match {issuer}")

        if "ok" in out:
            outcome: Outcome[O, X] = Outcome.success(self._validate(self._ok, out["ok"], link))
        else:
            outcome = Outcome.failure(self._validate(self._error, out["error"], link))
        logger.info("Receipt %s for %s: %s", link, ran, "ok" if outcome.is_ok else "error")

        return Receipt(
            root=block,
            blocks=blocks,
            ran=ran,
            out=outcome,
            issuer=issuer,
            signature=signature,
            fx=_effects(ocm.get("fx"), link),
            meta=_meta(ocm.get("meta"), link),
            proofs=_proofs(ocm.get("prf"), link),
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @staticmethod
    def _issuer(
        ocm: dict[str, Any],
        ran: CID,
        blocks: BlockStore,
        service: Principal | None,
        link: CID,
    ) -> str:
        if "iss" in ocm:
            if not isinstance(ocm["iss"], bytes):
                raise DecodeError(f"Receipt {link} issuer must be DID bytes")
            try:
                issuer = did_from_bytes(ocm["iss"])
            except ParseError as exc:
                raise DecodeError(f"Receipt {link} has an invalid issuer: {exc}") from exc
        else:
            invocation_block = blocks.find(ran)
            if invocation_block is not None:
                issuer = Invocation(invocation_block, blocks).audience
            elif service is not None:
                issuer = service.did()
            else:
                raise DecodeError(f"Cannot determine who issued receipt {link}")
        if service is not None and issuer != service.did():
            raise DecodeError(
                f"Receipt {link} was issued by {issuer}, expected {service.did()}"
            )
        return issuer

    @staticmethod
    def _verifier(issuer: str, service: Principal | None, link: CID) -> Verifier | None:
        if isinstance(service, Verifier):
            return service
        if issuer.startswith(DID_KEY_PREFIX):
            try:
                return Verifier.from_did_key(issuer)
            except ParseError as exc:
                raise DecodeError(f"Receipt {link} issuer key is invalid: {exc}") from exc
        return None

    @staticmethod
    def _validate(adapter: TypeAdapter[Any], payload: Any, link: CID) -> Any:
        try:
            return adapter.validate_python(payload)
        except ValidationError as exc:
            raise DecodeError(f"Receipt {link} payload does not match its schema: {exc}") from exc


def _effects(value: object, link: CID) -> Effects:
    if value is None:
        return Effects()
    if not isinstance(value, dict):
        raise DecodeError(f"Receipt {link} effects must be a map")
    fork = value.get("fork", [])
    join = value.get("join")
    if not isinstance(fork, list) or not all(isinstance(f, CID) for f in fork):
        raise DecodeError(f"Receipt {link} fork effects must be Links")
    if join is not None and not isinstance(join, CID):
        raise DecodeError(f"Receipt {link} join effect must be a Link")
    return Effects(fork=tuple(fork), join=join)


def _meta(value: object, link: CID) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise DecodeError(f"Receipt {link} meta must be a map")
    return value


def _proofs(value: object, link: CID) -> tuple[CID, ...]:
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(p, CID) for p in value):
        raise DecodeError(f"Receipt {link} proofs must be a list of Links")
    return tuple(value)


__all__ = ["ReceiptReader"]
