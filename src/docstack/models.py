from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntFlag
from typing import Any, Iterator, Optional
from urllib.parse import urlsplit, urlunsplit

DIRECTORY_MIME_TYPE = "vnd.android.document/directory"


class DocumentFlags(IntFlag):
    """Capability flags reported by a provider for a document."""

    NONE = 0
    SUPPORTS_WRITE = 1
    SUPPORTS_DELETE = 2
    SUPPORTS_THUMBNAIL = 4
    DIR_SUPPORTS_CREATE = 8
    SUPPORTS_RENAME = 64


@dataclass(frozen=True)
class DocUri:
    """Provider-scoped document reference, e.g. ``doc://auth/42``.

    The authority names the provider; the path (without leading slash) is the
    provider's document id. Query and fragment are carried through unchanged.
    """
    scheme: str
    authority: str
    path: str
    query: str = ""
    fragment: str = ""

    @staticmethod
    def parse(value: "str | DocUri") -> "DocUri":
        if isinstance(value, DocUri):
            return value
        if not value:
            raise ValueError("Empty document uri")
        parts = urlsplit(value)
        if not parts.netloc:
            raise ValueError(f"Document uri has no authority: {value!r}")
        return DocUri(
            scheme=parts.scheme,
            authority=parts.netloc,
            path=parts.path.lstrip("/"),
            query=parts.query,
            fragment=parts.fragment,
        )

    @property
    def document_id(self) -> str:
        return self.path

    def __str__(self) -> str:
        path = f"/{self.path}" if self.path else ""
        return urlunsplit((self.scheme, self.authority, path, self.query, self.fragment))


@dataclass(frozen=True)
class RootInfo:
    authority: str
    root_id: str
    title: str = ""
    document_id: str | None = None
    flags: int = 0
    summary: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "authority": self.authority,
            "root_id": self.root_id,
            "title": self.title,
            "document_id": self.document_id,
            "flags": self.flags,
            "summary": self.summary,
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class DocumentInfo:
    authority: str
    document_id: str
    display_name: str = ""
    mime_type: str = ""
    flags: DocumentFlags = DocumentFlags.NONE
    summary: str = ""
    scheme: str = "doc"
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def uri(self) -> str:
        return f"{self.scheme}://{self.authority}/{self.document_id}"

    @property
    def is_directory(self) -> bool:
        return self.mime_type == DIRECTORY_MIME_TYPE

    @property
    def supports_create(self) -> bool:
        return self.is_directory and bool(self.flags & DocumentFlags.DIR_SUPPORTS_CREATE)

    @property
    def supports_delete(self) -> bool:
        return bool(self.flags & DocumentFlags.SUPPORTS_DELETE)

    @property
    def supports_rename(self) -> bool:
        return bool(self.flags & DocumentFlags.SUPPORTS_RENAME)

    def to_dict(self) -> dict[str, Any]:
        return {
            "uri": self.uri,
            "document_id": self.document_id,
            "display_name": self.display_name,
            "mime_type": self.mime_type,
            "flags": int(self.flags),
            "summary": self.summary,
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class DocumentPath:
    """Result of a provider's native path lookup.

    ``segments`` runs from the root's child down to the target, inclusive.
    ``root_id`` is None when the provider did not supply one.
    """
    root_id: Optional[str]
    segments: tuple[str, ...] = ()

    def __post_init__(self):
        # Accept any sequence, store as tuple
        if not isinstance(self.segments, tuple):
            object.__setattr__(self, "segments", tuple(self.segments))


@dataclass(frozen=True)
class DocumentStack:
    """A root plus the ordered documents from that root down to a leaf."""
    root: RootInfo
    documents: tuple[DocumentInfo, ...]

    def __post_init__(self):
        if not isinstance(self.documents, tuple):
            object.__setattr__(self, "documents", tuple(self.documents))
        if not self.documents:
            raise ValueError("DocumentStack requires at least one document")
        for doc in self.documents:
            if doc.authority != self.root.authority:
                raise ValueError(
                    f"Document {doc.document_id} belongs to {doc.authority}, "
                    f"not root authority {self.root.authority}"
                )

    def __iter__(self) -> Iterator[DocumentInfo]:
        return iter(self.documents)

    def __len__(self) -> int:
        return len(self.documents)

    @property
    def depth(self) -> int:
        return len(self.documents)

    def peek(self) -> DocumentInfo:
        """Return the leaf document."""
        return self.documents[-1]

    @property
    def title(self) -> str:
        return self.peek().display_name

    def to_dict(self) -> dict[str, Any]:
        return {
            "root": self.root.to_dict(),
            "documents": [d.to_dict() for d in self.documents],
        }


class ResolutionStatus(Enum):
    """Why a resolution produced (or did not produce) a stack."""

    RESOLVED = "resolved"
    DISABLED = "disabled"  # find_path feature turned off
    UNSUPPORTED = "unsupported"  # provider returned no path
    PROVIDER_ERROR = "provider_error"
    MISSING_ROOT_ID = "missing_root_id"
    ROOT_NOT_FOUND = "root_not_found"
    DOCUMENTS_NOT_FOUND = "documents_not_found"


@dataclass(frozen=True)
class Resolution:
    status: ResolutionStatus
    stack: DocumentStack | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.stack is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "stack": self.stack.to_dict() if self.stack is not None else None,
            "error": self.error,
        }
