from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field

from ..models import DocUri, DocumentPath
from .base import ProviderAccess

logger = logging.getLogger(__name__)


@dataclass
class TimeoutProviderAccess:
    """Bounds ``find_path`` on a slow provider by a deadline.

    Usage:
        providers = TimeoutProviderAccess(inner=store, timeout_ms=5000)
        path = providers.find_path(uri)  # raises TimeoutError on overrun

    The overrunning call keeps its worker thread until the provider returns;
    only the caller is released.
    """

    inner: ProviderAccess
    timeout_ms: int = 5000

    _pool: ThreadPoolExecutor = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.timeout_ms <= 0:
            raise ValueError(f"Invalid timeout_ms: {self.timeout_ms}. Must be positive.")
        self._pool = ThreadPoolExecutor(max_workers=4, thread_name_prefix="find-path")

    @property
    def timeout_s(self) -> float:
        """Timeout in seconds."""
        return self.timeout_ms / 1000.0

    def find_path(self, doc_uri: DocUri) -> DocumentPath | None:
        future = self._pool.submit(self.inner.find_path, doc_uri)
        try:
            return future.result(timeout=self.timeout_s)
        except FutureTimeoutError:
            future.cancel()
            logger.warning(f"find_path for {doc_uri} exceeded {self.timeout_ms}ms")
            raise TimeoutError(f"find_path timed out after {self.timeout_ms}ms: {doc_uri}") from None

    def close(self) -> None:
        self._pool.shutdown(wait=False, cancel_futures=True)
