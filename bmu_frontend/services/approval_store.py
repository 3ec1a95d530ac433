from __future__ import annotations

import itertools
import logging
import threading
import time
from typing import Any, Callable, Sequence

from services.backend_client import BackendError


LOGGER = logging.getLogger("bmu_frontend.approvals")

DEFAULT_POLL_INTERVAL_SECONDS = 30.0

Listener = Callable[[dict[str, Any]], None]


class ApprovalQueueStore:
    """Pending-approval count for one signed-in approver.

    Mutations that touch the queue call ``refresh`` (via the registry
    broadcast); the polling thread is only a fallback for changes made
    elsewhere. Listeners are called with a snapshot when the count changes.
    A store stops polling once the credential it fetches with has expired,
    and the registry drops it on the next sweep.
    """

    def __init__(
        self,
        fetch_pending: Callable[[], Sequence[Any]],
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        expires_at: float | None = None,
    ):
        self._fetch_pending = fetch_pending
        self.expires_at = expires_at
        self.poll_interval_seconds = max(float(poll_interval_seconds), 1.0)
        self._lock = threading.Lock()
        self._listeners: dict[int, Listener] = {}
        self._listener_ids = itertools.count(1)
        self._pending_count = 0
        self._last_refreshed_at: float | None = None
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def is_expired(self, now: float | None = None) -> bool:
        if self.expires_at is None:
            return False
        return self.expires_at <= (now if now is not None else time.time())

    @property
    def pending_count(self) -> int:
        with self._lock:
            return self._pending_count

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {
                "pendingCount": self._pending_count,
                "lastRefreshedAt": self._last_refreshed_at,
            }

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            listener_id = next(self._listener_ids)
            self._listeners[listener_id] = listener

        def _unsubscribe() -> None:
            with self._lock:
                self._listeners.pop(listener_id, None)

        return _unsubscribe

    def update(self, pending: Sequence[Any]) -> int:
        count = len(pending)
        with self._lock:
            changed = count != self._pending_count
            self._pending_count = count
            self._last_refreshed_at = time.time()
            listeners = list(self._listeners.values()) if changed else []
        if listeners:
            snapshot = self.snapshot()
            for listener in listeners:
                try:
                    listener(snapshot)
                except Exception:
                    LOGGER.exception("Pending approval listener failed")
        return count

    def refresh(self) -> int:
        try:
            pending = self._fetch_pending()
        except BackendError as exc:
            LOGGER.warning("Pending approval refresh failed: %s", exc)
            return self.pending_count
        return self.update(pending)

    def start(self) -> None:
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return
            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._poll_loop,
                name="bmu-approval-poll",
                daemon=True,
            )
            self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        with self._lock:
            thread = self._thread
            self._thread = None
            self._listeners.clear()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=1.0)

    @property
    def is_polling(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    def _poll_loop(self) -> None:
        while not self._stop_event.wait(self.poll_interval_seconds):
            if self.is_expired():
                LOGGER.info("Pending approval polling stopped: session expired")
                break
            try:
                self.refresh()
            except Exception:
                LOGGER.exception("Pending approval poll failed")


class ApprovalStoreRegistry:
    def __init__(self):
        self._lock = threading.Lock()
        self._stores: dict[str, ApprovalQueueStore] = {}

    def get(self, key: str | None) -> ApprovalQueueStore | None:
        if not key:
            return None
        with self._lock:
            return self._stores.get(key)

    def register(self, key: str, store: ApprovalQueueStore) -> ApprovalQueueStore:
        self.evict_expired()
        with self._lock:
            previous = self._stores.get(key)
            self._stores[key] = store
        if previous is not None and previous is not store:
            previous.stop()
        return store

    def remove(self, key: str | None) -> None:
        if not key:
            return
        with self._lock:
            store = self._stores.pop(key, None)
        if store is not None:
            store.stop()

    def evict_expired(self, now: float | None = None) -> int:
        with self._lock:
            expired = [key for key, store in self._stores.items() if store.is_expired(now)]
            stores = [self._stores.pop(key) for key in expired]
        for store in stores:
            store.stop()
        if stores:
            LOGGER.info("Evicted %s expired approval store(s)", len(stores))
        return len(stores)

    def broadcast(self) -> None:
        self.evict_expired()
        with self._lock:
            stores = list(self._stores.values())
        for store in stores:
            store.refresh()

    def clear(self) -> None:
        with self._lock:
            stores = list(self._stores.values())
            self._stores.clear()
        for store in stores:
            store.stop()

    def __len__(self) -> int:
        with self._lock:
            return len(self._stores)
