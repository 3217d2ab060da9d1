"""
In-memory dataset store keyed by UUID.

Each dataset holds the raw records it was registered with. Datasets expire
after a period of inactivity; nothing is persisted.
"""

import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional


@dataclass
class Dataset:
    id: str
    name: str
    records: List[Dict[str, Any]]
    created_at: float
    last_accessed: float = field(default=0.0)


class RecordSource:
    """Thread-safe registry of record collections."""

    def __init__(self, ttl_seconds: float = 3600.0, timer: Callable[[], float] = time.time):
        self._datasets: Dict[str, Dataset] = {}
        self._lock = threading.Lock()
        self._ttl = ttl_seconds
        self._timer = timer

    def create(self, records: List[Dict[str, Any]], name: Optional[str] = None) -> Dataset:
        """Register records and return the new dataset."""
        dataset_id = str(uuid.uuid4())
        now = self._timer()
        dataset = Dataset(
            id=dataset_id,
            name=name or f"dataset-{dataset_id[:8]}",
            records=list(records),
            created_at=now,
            last_accessed=now,
        )
        with self._lock:
            self._datasets[dataset_id] = dataset
        return dataset

    def get(self, dataset_id: str) -> Optional[Dataset]:
        """Return the dataset if it exists and is not expired."""
        with self._lock:
            dataset = self._datasets.get(dataset_id)
            if dataset is None:
                return None
            now = self._timer()
            if now - dataset.last_accessed > self._ttl:
                del self._datasets[dataset_id]
                return None
            dataset.last_accessed = now
            return dataset

    def delete(self, dataset_id: str) -> bool:
        with self._lock:
            return self._datasets.pop(dataset_id, None) is not None

    def cleanup_expired(self) -> int:
        """Remove expired datasets. Returns number removed."""
        with self._lock:
            now = self._timer()
            expired = [
                did for did, d in self._datasets.items()
                if now - d.last_accessed > self._ttl
            ]
            for did in expired:
                del self._datasets[did]
            return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._datasets)
