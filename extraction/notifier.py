"""User-facing notifications emitted when an extraction batch settles."""

from typing import Protocol, Sequence

from models.extract_result import ExtractResult
from utils.logger import get_logger

logger = get_logger(__name__)

RESULTS_HINT = "see them under Extraction Results"


class Notifier(Protocol):
    """Fire-and-forget sink for user notifications (e.g. a UI toast)."""

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class LoggingNotifier:
    """Default notifier for hosts without a UI: writes notifications to the log."""

    def success(self, message: str) -> None:
        logger.info(f"[notify] {message}")

    def error(self, message: str) -> None:
        logger.warning(f"[notify] {message}")


def build_success_message(results: Sequence[ExtractResult]) -> str:
    """
    Summarize a completed batch.

    Messages supplied by the extraction backend are echoed when present;
    otherwise the POI and non-POI totals are reported.
    """
    messages = [r.message for r in results if r.message]
    if messages:
        return "\n".join(messages) + f", {RESULTS_HINT}"

    total_pois = sum(r.poi_count for r in results)
    total_non_pois = sum(r.non_poi_count for r in results)
    return (
        f"Extraction complete! Found {total_pois} POIs and {total_non_pois} other recommendations\n"
        f"You can {RESULTS_HINT}"
    )


def build_error_message(error: str | None) -> str:
    return f"Extraction failed: {error or 'Unknown error'}"
