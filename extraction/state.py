"""Immutable extraction snapshot and the container that publishes it."""

import threading
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Callable, Iterable, Mapping

from models.extract_result import ExtractResult
from models.extraction_task import ExtractionTask
from utils.logger import get_logger

logger = get_logger(__name__)

Listener = Callable[["ExtractState"], None]
Updater = Callable[["ExtractState"], "ExtractState"]


@dataclass(frozen=True)
class ExtractState:
    """
    Immutable snapshot of all extraction state.

    - tasks: conversation id -> ExtractionTask
    - results: web page id -> latest ExtractResult
    - extracting: web page ids awaiting a collaborator response (never persisted)

    The with_*/without_* helpers return a new snapshot and leave this one untouched.
    """

    tasks: Mapping[str, ExtractionTask] = field(default_factory=dict)
    results: Mapping[str, ExtractResult] = field(default_factory=dict)
    extracting: frozenset[str] = frozenset()

    def __post_init__(self):
        object.__setattr__(self, "tasks", MappingProxyType(dict(self.tasks)))
        object.__setattr__(self, "results", MappingProxyType(dict(self.results)))
        object.__setattr__(self, "extracting", frozenset(self.extracting))

    def with_task(self, conversation_id: str, task: ExtractionTask) -> "ExtractState":
        tasks = dict(self.tasks)
        tasks[conversation_id] = task
        return replace(self, tasks=tasks)

    def without_task(self, conversation_id: str) -> "ExtractState":
        tasks = dict(self.tasks)
        tasks.pop(conversation_id, None)
        return replace(self, tasks=tasks)

    def with_results(self, results: Iterable[ExtractResult]) -> "ExtractState":
        merged = dict(self.results)
        for result in results:
            merged[result.web_page_id] = result
        return replace(self, results=merged)

    def without_results(self, web_page_ids: Iterable[str]) -> "ExtractState":
        remaining = dict(self.results)
        for web_page_id in web_page_ids:
            remaining.pop(web_page_id, None)
        return replace(self, results=remaining)

    def with_extracting(self, web_page_ids: Iterable[str]) -> "ExtractState":
        return replace(self, extracting=self.extracting | frozenset(web_page_ids))

    def without_extracting(self, web_page_ids: Iterable[str]) -> "ExtractState":
        return replace(self, extracting=self.extracting - frozenset(web_page_ids))


class ExtractStateContainer:
    """
    Single owner of the current ExtractState.

    Every write goes through update(), which computes the next snapshot from the
    latest one and publishes it with one assignment. Listeners are called with
    each published snapshot, in publish order.
    """

    def __init__(self, initial: ExtractState | None = None):
        self._lock = threading.RLock()
        self._state = initial if initial is not None else ExtractState()
        self._listeners: list[Listener] = []

    @property
    def snapshot(self) -> ExtractState:
        return self._state

    def update(self, fn: Updater) -> ExtractState:
        """
        Apply fn to the latest snapshot and publish the result.

        Args:
            fn: Function mapping the current snapshot to the next one

        Returns:
            The published snapshot (the current one if fn returned it unchanged)
        """
        with self._lock:
            current = self._state
            new_state = fn(current)
            if new_state is current:
                return current
            self._state = new_state
            self._notify(new_state)
            return new_state

    def replace(self, state: ExtractState) -> ExtractState:
        """Publish state wholesale (used when hydrating from storage)."""
        return self.update(lambda _current: state)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener for published snapshots.

        Returns:
            Callable that removes the listener
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, state: ExtractState) -> None:
        for listener in list(self._listeners):
            # A listener published a newer snapshot; that publish already notified everyone.
            if self._state is not state:
                return
            try:
                listener(state)
            except Exception as e:
                logger.error(f"State listener failed: {e}", exc_info=True)
