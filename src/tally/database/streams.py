"""Change streams: push-based snapshots of one entity kind.

Each stream keeps an id-keyed index of the entities it publishes. The index is
loaded once, on first use, and then updated per mutated entity after every
committed unit of work instead of being reloaded wholesale.

Notifications run on a ``NotificationDispatcher`` thread, never on the writer's
thread, so subscribers cannot hold up or deadlock a write.
"""

import logging
import queue
import threading
from typing import Any, Callable, Generic, Iterable, Optional, TypeVar
from uuid import UUID

logger = logging.getLogger(__name__)

T = TypeVar("T")

Subscriber = Callable[[list[T]], None]


class NotificationDispatcher:
    """Runs submitted tasks one at a time, in submission order, on a daemon thread."""

    def __init__(self, name: str = "tally-notifications"):
        self.name = name
        self._queue: queue.Queue = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._start_lock = threading.Lock()

    def submit(self, task: Callable[..., None], *args) -> None:
        with self._start_lock:
            if self._thread is None:
                self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
                self._thread.start()
        self._queue.put((task, args))

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is None:
                    return
                task, args = item
                try:
                    task(*args)
                except Exception:
                    logger.exception("Notification task on %s failed", self.name)
            finally:
                self._queue.task_done()

    def flush(self) -> None:
        """Block until every task submitted so far has run.

        Must not be called from a task, which would wait on itself.
        """
        self._queue.join()

    def close(self) -> None:
        """Run the remaining tasks, then stop the thread."""
        with self._start_lock:
            thread, self._thread = self._thread, None
        if thread is not None:
            self._queue.put(None)
            thread.join()


class ChangeStream(Generic[T]):
    """Latest-value stream with replay for new subscribers."""

    def __init__(
        self,
        name: str,
        loader: Callable[[], list[T]],
        sort_key: Callable[[T], Any],
        descending: bool = False,
        dispatcher: Optional[NotificationDispatcher] = None,
    ):
        """Initialize a change stream.

        Args:
            name: Stream name used in log messages
            loader: Returns the full current list of entities (first load only)
            sort_key: Ordering of published snapshots
            descending: Publish snapshots in descending ``sort_key`` order
            dispatcher: Queue for the replay to new subscribers, so it stays
                ordered with change deliveries; replays inline when omitted
        """
        self.name = name
        self._loader = loader
        self._sort_key = sort_key
        self._descending = descending
        self._dispatcher = dispatcher
        self._lock = threading.RLock()
        self._index: Optional[dict[UUID, T]] = None
        self._subscribers: list[Subscriber] = []

    @property
    def is_loaded(self) -> bool:
        return self._index is not None

    def _ensure_loaded(self) -> dict[UUID, T]:
        if self._index is None:
            self._index = {entity.id: entity for entity in self._loader()}
            logger.debug("Loaded %d entities into %s stream", len(self._index), self.name)
        return self._index

    def _snapshot(self) -> list[T]:
        return sorted(self._ensure_loaded().values(), key=self._sort_key, reverse=self._descending)

    def latest(self) -> list[T]:
        """Return the current snapshot, loading it if needed."""
        with self._lock:
            return self._snapshot()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback`` and immediately replay the latest snapshot to it.

        Returns:
            A function that removes the subscription
        """
        with self._lock:
            snapshot = self._snapshot()
            self._subscribers.append(callback)
        if self._dispatcher is None:
            self._deliver(callback, snapshot)
        else:
            self._dispatcher.submit(self._deliver, callback, snapshot)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def apply_changes(self, upserted: Iterable[T] = (), removed: Iterable[UUID] = ()) -> None:
        """Fold one committed batch of changes into the index and notify once."""
        with self._lock:
            if self._index is None:
                return
            for entity in upserted:
                self._index[entity.id] = entity
            for entity_id in removed:
                self._index.pop(entity_id, None)
            snapshot = self._snapshot()
            subscribers = list(self._subscribers)

        for callback in subscribers:
            self._deliver(callback, snapshot)

    def _deliver(self, callback: Subscriber, snapshot: list[T]) -> None:
        try:
            callback(snapshot)
        except Exception:
            logger.exception("Subscriber of %s stream failed", self.name)
