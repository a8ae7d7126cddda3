"""Typed capability definitions: constructors, payload models and readers."""
from __future__ import annotations

from ucan_agent.capabilities.upload import (
    UPLOAD_LIST,
    UPLOAD_LIST_READER,
    UploadListCaveats,
    UploadListFailure,
    UploadListItem,
    UploadListSuccess,
    upload_list,
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
