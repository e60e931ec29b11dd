from __future__ import annotations

from typing import Protocol, Sequence

from ..models import DocUri, DocumentInfo, DocumentPath, RootInfo

class ProviderAccess(Protocol):
    """Access to a document provider's native operations.

    ``find_path`` returns None when the provider has no native path
    resolution. Transport failures and timeouts are raised.
    """

    def find_path(self, doc_uri: DocUri) -> DocumentPath | None:
        ...

class RootsAccess(Protocol):
    """Root lookup. May block on I/O; None for an unknown root."""

    def get_root_oneshot(self, authority: str, root_id: str) -> RootInfo | None:
        ...

class DocumentsAccess(Protocol):
    """Document metadata lookup.

    All-or-nothing: either every id resolves, in order, or None.
    """

    def get_documents(self, authority: str, document_ids: Sequence[str]) -> list[DocumentInfo] | None:
        ...
