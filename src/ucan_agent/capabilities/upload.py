"""The ``upload/list`` capability: list the uploads registered in a space.

Invoked against a space DID with optional pagination caveats. A successful
receipt carries one page of uploads; a failed one carries a named error.
Links in payloads arrive either as CIDs or as their string form and are
normalised to strings.
"""
from __future__ import annotations

from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator

from ucan_agent.did.identifier import parse_did
from ucan_agent.ipld.encoding import to_multibase
from ucan_agent.ipld.link import CID
from ucan_agent.principal.principal import Principal
from ucan_agent.receipt.reader import ReceiptReader
from ucan_agent.ucan.capability import Capability

UPLOAD_LIST: str = "upload/list"


def _link_to_str(value: Any) -> Any:
    return str(value) if isinstance(value, CID) else value


def _plain(value: Any) -> Any:
    """Turn Links and bytes anywhere in *value* into strings."""
    if isinstance(value, CID):
        return str(value)
    if isinstance(value, bytes):
        return to_multibase(value, "base64")
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


LinkStr = Annotated[str, BeforeValidator(_link_to_str)]


class UploadListCaveats(BaseModel):
    """Pagination caveats (``nb``) for ``upload/list``.

    Parameters
    ----------
    cursor:
        Opaque position returned by a previous page.
    size:
        Maximum number of items in the page.
    pre:
        When true, return the page *before* the cursor.
    """

    cursor: Optional[str] = None
    size: Optional[int] = Field(default=None, gt=0)
    pre: Optional[bool] = None


class UploadListItem(BaseModel):
    """One upload: a content root and the CAR shards that hold it."""

    model_config = ConfigDict(populate_by_name=True)

    root: LinkStr
    shards: list[LinkStr] = Field(default_factory=list)
    inserted_at: Optional[str] = Field(default=None, alias="insertedAt")
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")


class UploadListSuccess(BaseModel):
    """A page of uploads."""

    results: list[UploadListItem] = Field(default_factory=list)
    size: int = 0
    cursor: Optional[str] = None
    before: Optional[str] = None
    after: Optional[str] = None


class UploadListFailure(BaseModel):
    """A named failure reported by the service."""

    model_config = ConfigDict(extra="allow")

    name: str = "Error"
    message: str = ""

    @model_validator(mode="before")
    @classmethod
    def normalise_links(cls, data: Any) -> Any:
        return _plain(data)


def upload_list(space: Principal | str, caveats: UploadListCaveats | None = None) -> Capability:
    """Return the ``upload/list`` capability on *space*.

    Raises
    ------
    ParseError
        If *space* is not a DID.
    """
    resource = space.did() if isinstance(space, Principal) else parse_did(space)
    return Capability(UPLOAD_LIST, resource, caveats if caveats is not None else UploadListCaveats())


UPLOAD_LIST_READER: ReceiptReader[UploadListSuccess, UploadListFailure] = ReceiptReader(
    UploadListSuccess, UploadListFailure
)


__all__ = [
    "UPLOAD_LIST",
    "UPLOAD_LIST_READER",
    "UploadListCaveats",
    "UploadListFailure",
    "UploadListItem",
    "UploadListSuccess",
    "upload_list",
]
