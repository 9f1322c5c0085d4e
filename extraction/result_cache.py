"""Global web page -> extraction result cache backed by the shared state container."""

from models.extract_result import ExtractResult

from .state import ExtractStateContainer


class ResultCache:
    """
    Latest extraction result per web page, shared by every conversation.

    Last write wins and nothing is evicted. Each write publishes a new snapshot.
    """

    def __init__(self, container: ExtractStateContainer):
        self._container = container

    def get(self, web_page_id: str) -> ExtractResult | None:
        return self._container.snapshot.results.get(web_page_id)

    def has(self, web_page_id: str) -> bool:
        return web_page_id in self._container.snapshot.results

    def set(self, web_page_id: str, result: ExtractResult) -> None:
        """
        Store result under web_page_id, overwriting any previous value.

        Args:
            web_page_id: Cache key
            result: Result to store; its web_page_id must match the key
        """
        if result.web_page_id != web_page_id:
            raise ValueError(
                f"Result for {result.web_page_id!r} cannot be cached under {web_page_id!r}"
            )
        self._container.update(lambda state: state.with_results([result]))

    def delete(self, web_page_id: str) -> None:
        self._container.update(
            lambda state: state.without_results([web_page_id])
            if web_page_id in state.results
            else state
        )

    def __len__(self) -> int:
        return len(self._container.snapshot.results)
