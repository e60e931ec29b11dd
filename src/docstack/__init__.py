"""docstack — resolve the root and ancestor chain of a provider-backed document.

Given a document uri, asks the provider for the document's path, then loads
the root and every document on it into a DocumentStack. Failures collapse to
None; the result is delivered once, on the caller's host context.

Public API:
- StackConfig
- StackResolver
- LoadDocStackTask, load_doc_stack
- QueueHost, AsyncioHost
- DocumentStack, DocumentPath, DocUri, RootInfo, DocumentInfo
"""

from .config import StackConfig
from .models import (
    DocUri,
    DocumentFlags,
    DocumentInfo,
    DocumentPath,
    DocumentStack,
    Resolution,
    ResolutionStatus,
    RootInfo,
)
from .resolver import StackResolver
from .task import AsyncioHost, Host, LoadDocStackTask, QueueHost, load_doc_stack

__all__ = [
    "StackConfig",
    "StackResolver",
    "LoadDocStackTask",
    "load_doc_stack",
    "Host",
    "QueueHost",
    "AsyncioHost",
    "DocUri",
    "DocumentFlags",
    "DocumentInfo",
    "DocumentPath",
    "DocumentStack",
    "Resolution",
    "ResolutionStatus",
    "RootInfo",
]
