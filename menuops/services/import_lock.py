from __future__ import annotations

import logging
from contextlib import contextmanager
from threading import Lock
from typing import Iterator, Optional

from menuops.core.config import IMPORT_LOCK_TIMEOUT_SECONDS
from menuops.services.import_errors import ImportInProgressError

logger = logging.getLogger(__name__)


class ImportLock:
    """Process-wide mutual exclusion for catalog imports.

    Imports touching overlapping restaurants cannot interleave safely, so every
    import entry point holds this lock for the whole call.
    """

    def __init__(self, *, timeout_seconds: float = IMPORT_LOCK_TIMEOUT_SECONDS) -> None:
        self.timeout_seconds = timeout_seconds
        self._lock = Lock()
        self._holder: Optional[str] = None

    @property
    def holder(self) -> Optional[str]:
        return self._holder

    def locked(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def hold(self, label: str, *, timeout_seconds: Optional[float] = None) -> Iterator[None]:
        timeout = self.timeout_seconds if timeout_seconds is None else timeout_seconds
        if timeout > 0:
            acquired = self._lock.acquire(timeout=timeout)
        else:
            acquired = self._lock.acquire(blocking=False)
        if not acquired:
            logger.warning("import lock busy requested=%s holder=%s", label, self._holder)
            raise ImportInProgressError(f"Another import is in progress ({self._holder})")

        self._holder = label
        try:
            yield
        finally:
            self._holder = None
            self._lock.release()


import_lock = ImportLock()
