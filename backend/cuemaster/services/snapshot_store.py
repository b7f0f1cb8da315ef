# Overview: Collection store backed by the snapshot table; whole-value writes and push subscriptions.

"""
Collection Snapshot Store

WHY: Halls share state between terminals as complete collection snapshots.
This module is the only place that knows how snapshots are persisted; the
sync layer and the services see just write / read / subscribe.

CONTRACT:
- write_collection replaces the entire stored value for (hall_id, collection).
- subscribe delivers full values, never deltas.
- Last writer wins. No merge, no ordering guarantee across terminals.
- Subscribers are notified in-process right after a write commits, and by
  poll() for writes made by other processes (detected via the version column).
"""

from __future__ import annotations

import threading
from typing import Any, Callable

from ..extensions import db
from ..models import CollectionSnapshot
from .concurrency import run_with_retry


class SnapshotStoreError(Exception):
    """Raised when the store cannot persist or load a snapshot."""
    pass


Listener = Callable[[Any], None]


class SnapshotStore:
    """
    Snapshot persistence plus a listener registry.

    Must be used inside an application context (it goes through db.session).
    """

    def __init__(self, logger=None):
        self._listeners: dict[tuple[str, str], list[Listener]] = {}
        self._seen_versions: dict[tuple[str, str], int] = {}
        self._lock = threading.RLock()
        self._logger = logger

    # -- write / read ---------------------------------------------------------

    def write_collection(self, collection: str, data: Any, hall_id: str, *, written_by: str | None = None) -> int:
        """
        Replace the stored value and notify subscribers.

        Returns the new version number.
        """
        def _op():
            row = db.session.query(CollectionSnapshot).filter_by(
                hall_id=hall_id, collection=collection
            ).first()
            if row is None:
                row = CollectionSnapshot(hall_id=hall_id, collection=collection, data=data, version=1, written_by=written_by)
                db.session.add(row)
            else:
                row.data = data
                row.version = (row.version or 0) + 1
                row.written_by = written_by
            db.session.commit()
            return row.version

        version = run_with_retry(_op)
        with self._lock:
            self._seen_versions[(hall_id, collection)] = version
        self._notify(hall_id, collection, data)
        return version

    def read_collection(self, collection: str, hall_id: str) -> tuple[Any, int]:
        """Return (data, version); (None, 0) when nothing was ever written."""
        row = db.session.query(CollectionSnapshot).filter_by(
            hall_id=hall_id, collection=collection
        ).first()
        if row is None:
            return None, 0
        return row.data, row.version

    def list_snapshots(self, hall_id: str | None = None) -> list[CollectionSnapshot]:
        query = db.session.query(CollectionSnapshot)
        if hall_id is not None:
            query = query.filter_by(hall_id=hall_id)
        return query.order_by(CollectionSnapshot.hall_id, CollectionSnapshot.collection).all()

    # -- subscriptions --------------------------------------------------------

    def subscribe(self, collection: str, hall_id: str, on_update: Listener) -> Callable[[], None]:
        """
        Register for full-value pushes of one collection.

        Returns an unsubscribe handle.
        """
        key = (hall_id, collection)
        with self._lock:
            self._listeners.setdefault(key, []).append(on_update)

        def unsubscribe():
            with self._lock:
                listeners = self._listeners.get(key, [])
                if on_update in listeners:
                    listeners.remove(on_update)

        return unsubscribe

    def poll(self, hall_id: str) -> int:
        """
        Push snapshots that changed in the store since this process last saw them.

        Returns the number of collections delivered.
        """
        with self._lock:
            watched = [c for (h, c) in self._listeners if h == hall_id]
        if not watched:
            return 0

        rows = db.session.query(CollectionSnapshot).filter(
            CollectionSnapshot.hall_id == hall_id,
            CollectionSnapshot.collection.in_(watched),
        ).all()

        delivered = 0
        for row in rows:
            key = (row.hall_id, row.collection)
            with self._lock:
                if self._seen_versions.get(key, 0) >= row.version:
                    continue
                self._seen_versions[key] = row.version
            self._notify(row.hall_id, row.collection, row.data)
            delivered += 1
        return delivered

    def _notify(self, hall_id: str, collection: str, data: Any) -> None:
        with self._lock:
            listeners = list(self._listeners.get((hall_id, collection), []))
        for listener in listeners:
            try:
                listener(data)
            except Exception:
                # One broken subscriber must not starve the others
                if self._logger is not None:
                    self._logger.exception("Snapshot subscriber failed for %s/%s", hall_id, collection)
