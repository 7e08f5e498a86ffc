# websec/scanner/store.py
"""
In-memory scan store.

Owned by whoever creates it (the app factory in production, the test in
tests) and handed to the orchestrator. Nothing here is a module-level
singleton.

Concurrency:
    - one lock per record; mutate() runs the caller's function under it
    - get() returns a deep copy taken under the same lock, so a poller never
      sees a half-applied update
    - a store-wide lock guards the record/lock maps themselves
"""

from __future__ import annotations

import copy
import logging
import threading
import uuid
from typing import Callable, Dict, List, Optional

from websec.scanner.base import ScanNotFoundError, ScanRecord

logger = logging.getLogger(__name__)


class ScanStore:
    """Thread-safe map of scan id → ScanRecord with read/replace semantics."""

    def __init__(self):
        self._records: Dict[str, ScanRecord] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    # -------------------------------------------------------------------
    # Create / read
    # -------------------------------------------------------------------

    def create(self, url: str, domain: str) -> ScanRecord:
        """Insert a fresh pending record and return a snapshot of it."""
        record = ScanRecord(id=str(uuid.uuid4()), url=url, domain=domain)
        with self._guard:
            self._records[record.id] = record
            self._locks[record.id] = threading.Lock()
        logger.info(f"Scan {record.id} created for {url}")
        return copy.deepcopy(record)

    def get(self, scan_id: str) -> Optional[ScanRecord]:
        lock = self._lock_for(scan_id)
        if lock is None:
            return None
        with lock:
            record = self._records.get(scan_id)
            return copy.deepcopy(record) if record else None

    def list_recent(self, limit: int = 10) -> List[ScanRecord]:
        """Newest first by start time."""
        with self._guard:
            ids = list(self._records)
        snapshots = [s for s in (self.get(i) for i in ids) if s is not None]
        snapshots.sort(key=lambda r: r.start_time, reverse=True)
        return snapshots[:limit]

    def __len__(self) -> int:
        with self._guard:
            return len(self._records)

    def __contains__(self, scan_id: str) -> bool:
        with self._guard:
            return scan_id in self._records

    # -------------------------------------------------------------------
    # Write
    # -------------------------------------------------------------------

    def put(self, record: ScanRecord):
        """Replace (or insert) a record wholesale."""
        with self._guard:
            lock = self._locks.setdefault(record.id, threading.Lock())
        with lock:
            with self._guard:
                self._records[record.id] = copy.deepcopy(record)

    def mutate(self, scan_id: str, fn: Callable[[ScanRecord], None]) -> ScanRecord:
        """
        Apply `fn` to the stored record under its lock.

        Returns a snapshot of the record after the change.
        Raises ScanNotFoundError if the record does not exist.
        """
        lock = self._lock_for(scan_id)
        if lock is None:
            raise ScanNotFoundError(scan_id)
        with lock:
            record = self._records.get(scan_id)
            if record is None:
                raise ScanNotFoundError(scan_id)
            fn(record)
            return copy.deepcopy(record)

    def delete(self, scan_id: str) -> bool:
        with self._guard:
            self._locks.pop(scan_id, None)
            return self._records.pop(scan_id, None) is not None

    def clear(self):
        with self._guard:
            self._records.clear()
            self._locks.clear()

    def _lock_for(self, scan_id: str) -> Optional[threading.Lock]:
        with self._guard:
            return self._locks.get(scan_id)
