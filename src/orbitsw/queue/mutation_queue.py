"""Durable queue of write requests captured while offline.

Records are :class:`~orbitsw.models.QueuedMutation` dumps stored in a
:class:`diskcache.Cache` scoped to ``<root>/<database>/<store>``. Each
record gets an auto-incrementing integer id, assigned inside a diskcache
transaction together with the write, so concurrent producers never share
an id. Every operation is atomic per record; there is no queue-wide lock.

Replay order is ascending id, which is enqueue order.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import diskcache

from orbitsw.exceptions import QueueError
from orbitsw.models import QueuedMutation

_COUNTER_KEY = "__next_id__"


class MutationQueue:
    """Disk-backed FIFO of :class:`~orbitsw.models.QueuedMutation` records.

    Args:
        root: Directory the queue database lives under (usually the data
            directory).
        database: Database name, the first path segment below *root*.
        store: Store name inside the database.

    Example::

        queue = MutationQueue(get_data_dir(), "devorbit-sw", "devorbit-offline-queue")
        record_id = queue.add(QueuedMutation(url=url, method="POST", body="{}", timestamp=now))
        for mutation in queue.get_all():
            ...
        queue.delete(record_id)
    """

    def __init__(
        self,
        root: str | Path,
        database: str = "devorbit-sw",
        store: str = "devorbit-offline-queue",
    ) -> None:
        self._directory = Path(root) / database / store
        try:
            self._cache = diskcache.Cache(str(self._directory))
        except OSError as exc:
            raise QueueError(f"Cannot open mutation queue at {self._directory}: {exc}") from exc

    @property
    def directory(self) -> Path:
        return self._directory

    def add(self, mutation: QueuedMutation) -> int:
        """Persist *mutation* and return its newly assigned id.

        Any ``id`` already set on *mutation* is ignored.
        """
        with self._cache.transact():
            record_id = self._cache.incr(_COUNTER_KEY, delta=1, default=0)
            record = mutation.model_copy(update={"id": record_id})
            self._cache.set(record_id, record.model_dump())
        return record_id

    def get(self, record_id: int) -> Optional[QueuedMutation]:
        raw = self._cache.get(record_id)
        if raw is None:
            return None
        return QueuedMutation.model_validate(raw)

    def get_all(self) -> list[QueuedMutation]:
        """Return every queued record in enqueue order."""
        records = []
        for key in self._record_keys():
            raw = self._cache.get(key)
            # Deleted by a concurrent replay between listing and reading.
            if raw is None:
                continue
            records.append(QueuedMutation.model_validate(raw))
        return records

    def delete(self, record_id: int) -> bool:
        """Remove a record. Returns ``True`` if it was still queued."""
        return bool(self._cache.delete(record_id))

    def count(self) -> int:
        return len(self._record_keys())

    def clear(self) -> int:
        """Drop every record and return how many were removed.

        The id counter is kept so ids are never reused.
        """
        removed = 0
        with self._cache.transact():
            for key in self._record_keys():
                if self._cache.delete(key):
                    removed += 1
        return removed

    def close(self) -> None:
        self._cache.close()

    def __len__(self) -> int:
        return self.count()

    def _record_keys(self) -> list[int]:
        return sorted(key for key in self._cache.iterkeys() if isinstance(key, int))
