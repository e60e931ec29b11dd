from .base import DocumentsAccess, ProviderAccess, RootsAccess
from .memory import MemoryDocumentStore
from .timeout import TimeoutProviderAccess

__all__ = [
    "DocumentsAccess",
    "ProviderAccess",
    "RootsAccess",
    "MemoryDocumentStore",
    "TimeoutProviderAccess",
]
