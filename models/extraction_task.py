from dataclasses import dataclass, replace
from typing import Iterable, Literal

from .extract_result import ExtractResult

TaskStatus = Literal["pending", "extracting", "completed", "failed"]

VALID_STATUSES = ("pending", "extracting", "completed", "failed")


def union_web_page_ids(existing: Iterable[str], added: Iterable[str]) -> tuple[str, ...]:
    """Order-preserving union; ids already present keep their first position."""
    return tuple(dict.fromkeys([*existing, *added]))


@dataclass(frozen=True)
class ExtractionTask:
    """
    Per-conversation extraction state.

    web_page_ids holds every page requested for the conversation, in request
    order and without duplicates. results stays None until a batch completes.
    """

    web_page_ids: tuple[str, ...] = ()
    status: TaskStatus = "pending"
    results: tuple[ExtractResult, ...] | None = None
    error: str | None = None

    def __post_init__(self):
        if self.status not in VALID_STATUSES:
            raise ValueError(f"Invalid task status: {self.status!r}")
        object.__setattr__(self, "web_page_ids", union_web_page_ids((), self.web_page_ids))
        if self.results is not None and not isinstance(self.results, tuple):
            object.__setattr__(self, "results", tuple(self.results))

    @property
    def has_results(self) -> bool:
        return bool(self.results)

    def with_update(self, **kwargs) -> "ExtractionTask":
        """Return a copy with the given fields replaced."""
        return replace(self, **kwargs)
