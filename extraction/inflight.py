"""Ids of web pages currently awaiting an extraction response."""

from typing import Iterable

from .state import ExtractStateContainer


class InFlightSet:
    """
    Advisory set of in-flight web page ids.

    Used by callers to disable duplicate triggers; it never blocks a new request
    and is never persisted.
    """

    def __init__(self, container: ExtractStateContainer):
        self._container = container

    def add(self, web_page_ids: Iterable[str]) -> None:
        ids = frozenset(web_page_ids)
        if ids:
            self._container.update(lambda state: state.with_extracting(ids))

    def remove(self, web_page_ids: Iterable[str]) -> None:
        ids = frozenset(web_page_ids)
        self._container.update(
            lambda state: state.without_extracting(ids) if ids & state.extracting else state
        )

    def contains(self, web_page_id: str) -> bool:
        return web_page_id in self._container.snapshot.extracting

    def __contains__(self, web_page_id: str) -> bool:
        return self.contains(web_page_id)

    def __len__(self) -> int:
        return len(self._container.snapshot.extracting)
