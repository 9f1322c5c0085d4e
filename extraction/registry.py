"""Per-conversation extraction task registry.

Owns the extraction task state machine:

    pending -> extracting -> completed | failed

completed and failed both go back to extracting when a new batch starts for the
same conversation. Every transition is one read-modify-write on the shared
state container, so completion handlers always merge into the latest snapshot.
"""

import asyncio
from typing import Callable, Iterable, Sequence

from config.config import DEFAULT_STORAGE_KEY
from models.extract_result import ExtractResult
from models.extraction_task import ExtractionTask, union_web_page_ids
from utils.logger import get_logger

from .codec import PersistenceCodec
from .contracts import ExtractWebPageRequest, WebPageExtractor, coerce_results
from .inflight import InFlightSet
from .notifier import LoggingNotifier, Notifier, build_error_message, build_success_message
from .result_cache import ResultCache
from .state import ExtractState, ExtractStateContainer, Listener
from .storage import SessionStorage

logger = get_logger(__name__)


def merge_results(
    existing: Iterable[ExtractResult], incoming: Iterable[ExtractResult]
) -> tuple[ExtractResult, ...]:
    """
    Merge two result lists keyed by web_page_id.

    Incoming results replace existing ones in place; new ids are appended in
    incoming order; existing results without a replacement are kept.
    """
    merged: dict[str, ExtractResult] = {}
    for result in existing:
        merged[result.web_page_id] = result
    for result in incoming:
        merged[result.web_page_id] = result
    return tuple(merged.values())


class TaskRegistry:
    """
    Tracks extraction jobs per conversation and caches their results.

    start_extract() updates state synchronously and runs the extractor as a
    detached task on the running event loop. Results land in the global
    ResultCache and are merged into the conversation's task; failures mark
    the task failed. A notification is emitted either way.

    When a SessionStorage is given, state is restored from it on construction
    and written back (tasks and results only) after every change.
    """

    def __init__(
        self,
        extractor: WebPageExtractor,
        notifier: Notifier | None = None,
        container: ExtractStateContainer | None = None,
        storage: SessionStorage | None = None,
        storage_key: str = DEFAULT_STORAGE_KEY,
        codec: PersistenceCodec | None = None,
    ):
        """
        Initialize the registry.

        Args:
            extractor: Async collaborator performing the extraction call
            notifier: Receives success/error notifications (defaults to logging)
            container: Shared state container (a fresh one if None)
            storage: Optional session storage used to persist tasks and results
            storage_key: Key of the persisted document in storage
            codec: Codec for the persisted document
        """
        self._extractor = extractor
        self._notifier = notifier or LoggingNotifier()
        self._container = container or ExtractStateContainer()
        self._codec = codec or PersistenceCodec()
        self._storage = storage
        self._storage_key = storage_key
        self._pending: set[asyncio.Task] = set()

        self.result_cache = ResultCache(self._container)
        self.in_flight = InFlightSet(self._container)

        if storage is not None:
            self._hydrate()
            self._container.subscribe(self._persist)

    @property
    def state(self) -> ExtractState:
        """Current snapshot."""
        return self._container.snapshot

    @property
    def pending_count(self) -> int:
        """Number of extraction calls that have not settled yet."""
        return len(self._pending)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self._container.subscribe(listener)

    # ------------------------------------------------------------------
    # Orchestration
    # ------------------------------------------------------------------

    def start_extract(
        self, conversation_id: str, web_page_ids: Sequence[str], city: str | None = None
    ) -> None:
        """
        Start extracting a batch of web pages for a conversation.

        Callers must not pass an empty batch. Must be called from inside a
        running event loop; the extractor call is scheduled on it and this
        method returns immediately.

        Args:
            conversation_id: Conversation the batch belongs to
            web_page_ids: Ids of the pages to extract
            city: Optional city hint forwarded to the extractor
        """
        loop = asyncio.get_running_loop()
        batch = list(web_page_ids)

        def begin(state: ExtractState) -> ExtractState:
            existing = state.tasks.get(conversation_id)
            task = ExtractionTask(
                web_page_ids=union_web_page_ids(existing.web_page_ids if existing else (), batch),
                status="extracting",
                results=existing.results if existing else None,
            )
            return state.with_task(conversation_id, task).with_extracting(batch)

        self._container.update(begin)
        logger.info(
            "Extraction started",
            extra={
                "extra_fields": {
                    "conversation_id": conversation_id,
                    "web_page_ids": batch,
                    "city": city,
                }
            },
        )

        job = loop.create_task(
            self._run_extraction(conversation_id, batch, city),
            name=f"extract:{conversation_id}",
        )
        self._pending.add(job)
        job.add_done_callback(self._pending.discard)

    async def join(self) -> None:
        """Wait until every extraction started so far has settled."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _run_extraction(self, conversation_id: str, batch: list[str], city: str | None) -> None:
        request = ExtractWebPageRequest(web_page_ids=list(batch), city=city)
        try:
            results = coerce_results(await self._extractor(request))
        except asyncio.CancelledError:
            # Task stays extracting, but the batch no longer counts as in flight.
            self.in_flight.remove(batch)
            logger.warning(
                "Extraction cancelled",
                extra={"extra_fields": {"conversation_id": conversation_id, "web_page_ids": batch}},
            )
            raise
        except Exception as e:
            self._fail(conversation_id, batch, e)
            return
        self._complete(conversation_id, batch, results)

    def _complete(self, conversation_id: str, batch: list[str], results: list[ExtractResult]) -> None:
        def finish(state: ExtractState) -> ExtractState:
            existing = state.tasks.get(conversation_id)
            previous = existing.results if existing and existing.results else ()
            task = ExtractionTask(
                web_page_ids=union_web_page_ids(existing.web_page_ids if existing else (), batch),
                status="completed",
                results=merge_results(previous, results),
            )
            return (
                state.with_results(results)
                .without_extracting(batch)
                .with_task(conversation_id, task)
            )

        self._container.update(finish)
        logger.info(
            "Extraction completed",
            extra={
                "extra_fields": {
                    "conversation_id": conversation_id,
                    "results": len(results),
                    "pois": sum(r.poi_count for r in results),
                    "non_pois": sum(r.non_poi_count for r in results),
                }
            },
        )
        self._emit(self._notifier.success, build_success_message(results))

    def _fail(self, conversation_id: str, batch: list[str], error: Exception) -> None:
        message = str(error) or None

        # Replaces the whole task, so earlier completed results of this
        # conversation are dropped.
        def fail(state: ExtractState) -> ExtractState:
            task = ExtractionTask(web_page_ids=tuple(batch), status="failed", error=message)
            return state.without_extracting(batch).with_task(conversation_id, task)

        self._container.update(fail)
        logger.error(
            f"Extraction failed: {error}",
            exc_info=error,
            extra={
                "extra_fields": {
                    "conversation_id": conversation_id,
                    "web_page_ids": batch,
                    "error_type": type(error).__name__,
                }
            },
        )
        self._emit(self._notifier.error, build_error_message(message))

    def _emit(self, send: Callable[[str], None], message: str) -> None:
        try:
            send(message)
        except Exception as e:
            logger.error(f"Notifier failed: {e}", exc_info=True)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_task(self, conversation_id: str) -> ExtractionTask | None:
        return self.state.tasks.get(conversation_id)

    def get_result(self, web_page_id: str) -> ExtractResult | None:
        return self.result_cache.get(web_page_id)

    def has_result(self, web_page_id: str) -> bool:
        return self.result_cache.has(web_page_id)

    def is_extracting(self, web_page_id: str) -> bool:
        return self.in_flight.contains(web_page_id)

    def get_results_by_conversation(self, conversation_id: str) -> list[ExtractResult]:
        task = self.get_task(conversation_id)
        return list(task.results or ()) if task else []

    def has_conversation_results(self, conversation_id: str) -> bool:
        task = self.get_task(conversation_id)
        return bool(task and task.results)

    # ------------------------------------------------------------------
    # Removal
    # ------------------------------------------------------------------

    def remove_result(self, conversation_id: str, web_page_id: str) -> None:
        """Drop one result from the conversation and from the global cache."""

        def drop(state: ExtractState) -> ExtractState:
            new_state = state
            task = state.tasks.get(conversation_id)
            if task is not None and task.results is not None:
                kept = tuple(r for r in task.results if r.web_page_id != web_page_id)
                if len(kept) != len(task.results):
                    new_state = new_state.with_task(conversation_id, task.with_update(results=kept))
            if web_page_id in state.results:
                new_state = new_state.without_results([web_page_id])
            return new_state

        self._container.update(drop)

    def clear_all_results(self, conversation_id: str) -> None:
        """Empty the conversation's results and uncache exactly those pages."""

        def clear(state: ExtractState) -> ExtractState:
            task = state.tasks.get(conversation_id)
            if task is None:
                return state
            owned = [r.web_page_id for r in task.results or ()]
            return state.without_results(owned).with_task(conversation_id, task.with_update(results=()))

        self._container.update(clear)

    def clear_task(self, conversation_id: str) -> None:
        """Delete the conversation's task; cached results stay for other conversations."""
        self._container.update(
            lambda state: state.without_task(conversation_id)
            if conversation_id in state.tasks
            else state
        )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _hydrate(self) -> None:
        try:
            blob = self._storage.get_item(self._storage_key)
        except OSError as e:
            logger.warning(f"Could not read persisted extraction state: {e}")
            blob = None
        restored = self._codec.deserialize(blob)
        self._container.replace(restored)
        logger.info(
            "Extraction state hydrated",
            extra={
                "extra_fields": {
                    "storage_key": self._storage_key,
                    "tasks": len(restored.tasks),
                    "results": len(restored.results),
                }
            },
        )

    def _persist(self, state: ExtractState) -> None:
        try:
            self._storage.set_item(self._storage_key, self._codec.serialize(state))
        except (OSError, ValueError) as e:
            logger.error(f"Could not persist extraction state: {e}", exc_info=True)
