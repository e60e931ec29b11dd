"""Best-effort lookup of the root and ancestor chain of a document."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .access.base import DocumentsAccess, ProviderAccess, RootsAccess
from .config import StackConfig
from .models import DocUri, DocumentPath, DocumentStack, Resolution, ResolutionStatus

logger = logging.getLogger(__name__)


@dataclass
class StackResolver:
    """Resolves the DocumentStack of one document.

    Uses the provider's native ``find_path`` when the config enables it.
    Every failure collapses to None in ``resolve``; ``resolve_outcome`` keeps
    the reason. Nothing raised by a collaborator escapes.
    """

    doc_uri: DocUri | str
    roots: RootsAccess
    docs: DocumentsAccess
    providers: ProviderAccess
    config: StackConfig = field(default_factory=StackConfig)

    def __post_init__(self) -> None:
        self.doc_uri = DocUri.parse(self.doc_uri)
        self.authority = self.doc_uri.authority

    def resolve(self) -> DocumentStack | None:
        return self.resolve_outcome().stack

    def resolve_outcome(self) -> Resolution:
        if not self.config.enable_find_path:
            logger.debug(f"find_path disabled, not resolving {self.doc_uri}")
            return Resolution(ResolutionStatus.DISABLED)

        try:
            path = self.providers.find_path(self.doc_uri)
            if path is None:
                logger.info(f"Remote provider {self.authority} doesn't support find_path.")
                return Resolution(ResolutionStatus.UNSUPPORTED)
            return self._build(path)
        except Exception as e:
            logger.exception(f"Failed to build document stack for uri: {self.doc_uri}")
            return Resolution(ResolutionStatus.PROVIDER_ERROR, error=f"{type(e).__name__}: {e}")

    def build_stack(self, path: DocumentPath) -> DocumentStack | None:
        try:
            return self._build(path).stack
        except Exception:
            logger.exception(f"Failed to build document stack for uri: {self.doc_uri}")
            return None

    def _build(self, path: DocumentPath) -> Resolution:
        root_id = path.root_id
        if not root_id:
            logger.error(f"Provider {self.authority} doesn't provide root id for {self.doc_uri}.")
            return Resolution(ResolutionStatus.MISSING_ROOT_ID)

        root = self.roots.get_root_oneshot(self.authority, root_id)
        docs = self.docs.get_documents(self.authority, list(path.segments))

        if root is None or not docs:
            logger.error(f"Either root: {root} or docs: {docs} failed to load.")
            status = ResolutionStatus.ROOT_NOT_FOUND if root is None else ResolutionStatus.DOCUMENTS_NOT_FOUND
            return Resolution(status)

        return Resolution(ResolutionStatus.RESOLVED, stack=DocumentStack(root, tuple(docs)))
