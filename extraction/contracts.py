"""Contracts for the web page extraction collaborator."""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Mapping, Protocol, Sequence

from models.extract_result import ExtractResult

from .schemas import ExtractResultDTO

RawResult = ExtractResult | Mapping[str, Any]


@dataclass(frozen=True)
class ExtractWebPageRequest:
    """Batch of web pages to mine, optionally scoped to a city."""

    web_page_ids: list[str] = field(default_factory=list)
    city: str | None = None

    def to_payload(self) -> dict[str, Any]:
        """Request body in the backend's JSON shape."""
        payload: dict[str, Any] = {"webPageIds": list(self.web_page_ids)}
        if self.city is not None:
            payload["city"] = self.city
        return payload


class WebPageExtractor(Protocol):
    """
    Performs extraction for a batch of pages.

    Resolves with one result per page (as ExtractResult or as the backend's
    JSON objects) or raises an exception whose str() is a readable message.
    """

    def __call__(self, request: ExtractWebPageRequest) -> Awaitable[Sequence[RawResult]]: ...


def sync_extractor(fn: Callable[[ExtractWebPageRequest], Sequence[RawResult]]) -> WebPageExtractor:
    """Wrap a blocking extraction function so it runs in a worker thread."""

    async def run(request: ExtractWebPageRequest) -> Sequence[RawResult]:
        return await asyncio.to_thread(fn, request)

    return run


def coerce_results(raw: Iterable[RawResult]) -> list[ExtractResult]:
    """
    Normalize collaborator output to ExtractResult objects.

    Raises:
        TypeError: If an item is neither an ExtractResult nor a mapping
        pydantic.ValidationError: If a mapping does not match the result schema
    """
    if raw is None:
        raise TypeError("Extractor returned no result list")

    results = []
    for item in raw:
        if isinstance(item, ExtractResult):
            results.append(item)
        elif isinstance(item, Mapping):
            results.append(ExtractResultDTO.model_validate(dict(item)).to_domain())
        else:
            raise TypeError(f"Unexpected extraction result type: {type(item).__name__}")
    return results
