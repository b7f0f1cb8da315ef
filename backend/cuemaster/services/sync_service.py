# Overview: Debounced whole-snapshot sync between local hall state, the local cache and the collection store.

"""
Collection Sync

WHY: Each terminal keeps its own copy of the hall's collections and pushes
complete snapshots to the shared store. This is a deliberate last-writer-wins
model sized for a handful of staff terminals per hall; it is not a merge
protocol and must not grow into one.

RULES (per hall, per collection key):
- Local mutation: local state replaced, local cache written immediately,
  remote write scheduled after SYNC_DEBOUNCE_SECONDS. Further mutations
  inside the window collapse into one write of the latest state.
- Before a remote write the key's "ignore next incoming snapshot" flag is set,
  so the store echoing our own write back does not overwrite local state.
- Incoming snapshot: ignored if flagged (flag cleared) or equal to local
  state; otherwise it replaces local state and the cache, and cancels any
  unsent local write for that key. Incoming data is never written back.
- Remote write failure: logged, local optimistic state kept, no retry queue.
  The next mutation of that key is the retry.
- Startup: cache first, then the store's current value as the first snapshot.
"""

from __future__ import annotations

import copy
import threading
import uuid
from typing import Any, Callable

from flask import current_app, has_app_context

from .local_cache import LocalCache
from .snapshot_store import SnapshotStore


class HallSync:
    """Local state of every collection of one hall partition."""

    def __init__(
        self,
        *,
        app,
        store: SnapshotStore,
        cache: LocalCache,
        hall_id: str,
        debounce_seconds: float = 1.5,
        terminal_id: str | None = None,
    ):
        self._app = app
        self._store = store
        self._cache = cache
        self.hall_id = hall_id
        self.debounce_seconds = debounce_seconds
        self.terminal_id = terminal_id or uuid.uuid4().hex[:12]

        self._lock = threading.RLock()
        self._state: dict[str, Any] = {}
        self._ignore_next: dict[str, bool] = {}
        self._timers: dict[str, threading.Timer] = {}
        self._unsubscribers: dict[str, Callable[[], None]] = {}

    # -- reads ---------------------------------------------------------------

    def get(self, collection: str, default: Any = None) -> Any:
        """Current local value (deep copy), loading the collection on first use."""
        with self._lock:
            if collection not in self._state:
                self._load(collection, default)
            value = self._state.get(collection)
        if value is None:
            return copy.deepcopy(default)
        return copy.deepcopy(value)

    def _load(self, collection: str, default: Any) -> None:
        self._state[collection] = self._cache.read(collection, self.hall_id, default)
        self._unsubscribers[collection] = self._store.subscribe(
            collection,
            self.hall_id,
            lambda data, _c=collection: self.apply_incoming(_c, data),
        )
        try:
            data, version = self._store.read_collection(collection, self.hall_id)
        except Exception:
            self._app.logger.exception("Initial load of %s/%s failed; using cache", self.hall_id, collection)
            return
        if version:
            self.apply_incoming(collection, data)

    # -- local writes ----------------------------------------------------------

    def put(self, collection: str, data: Any) -> None:
        """Replace local state, write the cache now and schedule the remote write."""
        data = copy.deepcopy(data)
        with self._lock:
            if collection not in self._state:
                self._load(collection, None)
            self._state[collection] = data
            self._cache.write(collection, self.hall_id, data)

            existing = self._timers.pop(collection, None)
            if existing is not None:
                existing.cancel()

            if self.debounce_seconds <= 0:
                inline = True
            else:
                inline = False
                timer = threading.Timer(self.debounce_seconds, self._flush_key, args=(collection,))
                timer.daemon = True
                self._timers[collection] = timer
                timer.start()

        if inline:
            self._flush_key(collection)

    def flush(self) -> None:
        """Write every pending collection now (shutdown, tests, CLI)."""
        with self._lock:
            pending = list(self._timers.keys())
            for key in pending:
                self._timers.pop(key).cancel()
        for key in pending:
            self._flush_key(key)

    def _flush_key(self, collection: str) -> None:
        with self._lock:
            timer = self._timers.get(collection)
            if timer is not None and timer is not threading.current_thread():
                # A newer put() rescheduled this key; that timer owns the write
                return
            self._timers.pop(collection, None)
            data = copy.deepcopy(self._state.get(collection))
            self._ignore_next[collection] = True

        try:
            if has_app_context() and current_app._get_current_object() is self._app:
                self._store.write_collection(collection, data, self.hall_id, written_by=self.terminal_id)
            else:
                # Debounce timers run on their own thread
                with self._app.app_context():
                    self._store.write_collection(collection, data, self.hall_id, written_by=self.terminal_id)
        except Exception:
            with self._lock:
                self._ignore_next[collection] = False
            self._app.logger.exception(
                "Snapshot write of %s/%s failed; keeping local state", self.hall_id, collection
            )

    # -- incoming --------------------------------------------------------------

    def apply_incoming(self, collection: str, data: Any) -> bool:
        """
        Handle a full snapshot pushed by the store.

        Returns True when local state was replaced.
        """
        if data is None:
            return False
        with self._lock:
            if self._ignore_next.get(collection):
                self._ignore_next[collection] = False
                return False
            if data == self._state.get(collection):
                return False
            self._state[collection] = copy.deepcopy(data)
            self._cache.write(collection, self.hall_id, data)
            pending = self._timers.pop(collection, None)
        if pending is not None:
            pending.cancel()
        return True

    def has_pending_writes(self) -> bool:
        with self._lock:
            return bool(self._timers)

    def close(self) -> None:
        self.flush()
        with self._lock:
            for unsubscribe in self._unsubscribers.values():
                unsubscribe()
            self._unsubscribers.clear()


class SyncRegistry:
    """
    Per-application owner of the store, the cache and one HallSync per hall.

    Registered as app.extensions["cuemaster.sync"].
    """

    def __init__(self, app, *, cache_dir: str, debounce_seconds: float):
        self._app = app
        self.store = SnapshotStore(logger=app.logger)
        self.cache = LocalCache(cache_dir)
        self.debounce_seconds = debounce_seconds
        self.terminal_id = uuid.uuid4().hex[:12]
        self._halls: dict[str, HallSync] = {}
        self._lock = threading.Lock()

    def for_hall(self, hall_id: str) -> HallSync:
        with self._lock:
            sync = self._halls.get(hall_id)
            if sync is None:
                sync = HallSync(
                    app=self._app,
                    store=self.store,
                    cache=self.cache,
                    hall_id=hall_id,
                    debounce_seconds=self.debounce_seconds,
                    terminal_id=self.terminal_id,
                )
                self._halls[hall_id] = sync
            return sync

    def poll(self, hall_id: str) -> int:
        return self.store.poll(hall_id)

    def flush_all(self) -> None:
        with self._lock:
            halls = list(self._halls.values())
        for sync in halls:
            sync.flush()

    def close(self) -> None:
        with self._lock:
            halls = list(self._halls.values())
            self._halls.clear()
        for sync in halls:
            sync.close()
