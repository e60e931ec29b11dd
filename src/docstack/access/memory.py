"""In-process document store implementing the provider, roots and documents contracts.

Used by the CLI and by tests. A tree file describes roots and documents:

    authority = "auth"

    [[roots]]
    id = "root1"
    title = "Home"
    document_id = "0"

    [[documents]]
    id = "1"
    name = "Projects"
    parent = "0"
"""
from __future__ import annotations

import logging
import threading
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

from ..models import DIRECTORY_MIME_TYPE, DocUri, DocumentFlags, DocumentInfo, DocumentPath, RootInfo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Node:
    info: DocumentInfo
    parent: str | None


class MemoryDocumentStore:
    """Thread-safe tree of roots and documents for a single authority."""

    def __init__(self, authority: str, scheme: str = "doc", supports_find_path: bool = True) -> None:
        if not authority:
            raise ValueError("authority is required")
        self.authority = authority
        self.scheme = scheme
        self.supports_find_path = supports_find_path
        self._roots: dict[str, RootInfo] = {}
        self._nodes: dict[str, _Node] = {}
        self._lock = threading.Lock()

    def add_root(
        self,
        root_id: str,
        title: str = "",
        document_id: str | None = None,
        flags: int = 0,
        summary: str = "",
    ) -> RootInfo:
        root = RootInfo(
            authority=self.authority,
            root_id=root_id,
            title=title or root_id,
            document_id=document_id,
            flags=flags,
            summary=summary,
        )
        with self._lock:
            self._roots[root_id] = root
        return root

    def add_document(
        self,
        document_id: str,
        display_name: str = "",
        parent: str | None = None,
        mime_type: str = DIRECTORY_MIME_TYPE,
        flags: DocumentFlags = DocumentFlags.NONE,
        summary: str = "",
    ) -> DocumentInfo:
        info = DocumentInfo(
            authority=self.authority,
            document_id=document_id,
            display_name=display_name or document_id,
            mime_type=mime_type,
            flags=DocumentFlags(flags),
            summary=summary,
            scheme=self.scheme,
        )
        with self._lock:
            self._nodes[document_id] = _Node(info=info, parent=parent)
        return info

    def uri(self, document_id: str) -> DocUri:
        return DocUri(scheme=self.scheme, authority=self.authority, path=document_id)

    # ProviderAccess

    def find_path(self, doc_uri: DocUri) -> DocumentPath | None:
        """Walk parent links from the document up to the document of a root.

        Segments exclude the root's own document unless it is the target.
        A chain that reaches the top without meeting a root yields a path
        with no root id.
        """
        if not self.supports_find_path:
            return None
        doc_uri = DocUri.parse(doc_uri)
        if doc_uri.authority != self.authority:
            raise FileNotFoundError(f"Unknown authority: {doc_uri.authority}")

        with self._lock:
            root_docs = {r.document_id: r.root_id for r in self._roots.values() if r.document_id}
            if doc_uri.document_id not in self._nodes:
                raise FileNotFoundError(f"Unknown document: {doc_uri}")

            chain: list[str] = []
            seen: set[str] = set()
            current: str | None = doc_uri.document_id
            while current is not None:
                if current in seen:
                    raise ValueError(f"Parent cycle at document {current}")
                seen.add(current)
                if current in root_docs:
                    if not chain:
                        chain.append(current)
                    chain.reverse()
                    return DocumentPath(root_id=root_docs[current], segments=tuple(chain))
                chain.append(current)
                node = self._nodes.get(current)
                current = node.parent if node is not None else None

        chain.reverse()
        logger.debug(f"Document {doc_uri} is not under any root")
        return DocumentPath(root_id=None, segments=tuple(chain))

    # RootsAccess

    def get_root_oneshot(self, authority: str, root_id: str) -> RootInfo | None:
        if authority != self.authority:
            return None
        with self._lock:
            return self._roots.get(root_id)

    # DocumentsAccess

    def get_documents(self, authority: str, document_ids: Sequence[str]) -> list[DocumentInfo] | None:
        if authority != self.authority:
            return None
        docs: list[DocumentInfo] = []
        with self._lock:
            for doc_id in document_ids:
                node = self._nodes.get(doc_id)
                if node is None:
                    logger.debug(f"Document {doc_id} not found in {self.authority}")
                    return None
                docs.append(node.info)
        return docs

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "MemoryDocumentStore":
        authority = data.get("authority")
        if not authority:
            raise ValueError("Tree file requires an 'authority'")
        store = MemoryDocumentStore(
            authority=authority,
            scheme=data.get("scheme", "doc"),
            supports_find_path=bool(data.get("supports_find_path", True)),
        )
        for r in data.get("roots", []):
            if "id" not in r:
                raise ValueError(f"Root entry without 'id': {r}")
            store.add_root(
                str(r["id"]),
                title=r.get("title", ""),
                document_id=str(r["document_id"]) if r.get("document_id") is not None else None,
                flags=int(r.get("flags", 0)),
                summary=r.get("summary", ""),
            )
        for d in data.get("documents", []):
            if "id" not in d:
                raise ValueError(f"Document entry without 'id': {d}")
            store.add_document(
                str(d["id"]),
                display_name=d.get("name", ""),
                parent=str(d["parent"]) if d.get("parent") is not None else None,
                mime_type=d.get("mime_type", DIRECTORY_MIME_TYPE),
                flags=DocumentFlags(int(d.get("flags", 0))),
                summary=d.get("summary", ""),
            )
        return store

    @staticmethod
    def from_toml(path: str | Path) -> "MemoryDocumentStore":
        data = tomllib.loads(Path(path).read_text(encoding="utf-8"))
        return MemoryDocumentStore.from_dict(data)
