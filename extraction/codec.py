"""Serialize extraction state to the session storage blob and back.

Document layout:

    {
      "tasks":   [[conversationId, ExtractionTask], ...],
      "results": [[webPageId, ExtractResult], ...]
    }

Decoding fails closed: an absent, malformed or structurally invalid blob
yields an empty state instead of raising.
"""

from pydantic import ValidationError

from utils.logger import get_logger

from .schemas import ExtractionTaskDTO, ExtractResultDTO, PersistedStateDTO
from .state import ExtractState

logger = get_logger(__name__)


class PersistenceCodec:
    """Converts ExtractState to and from its persisted JSON form."""

    def serialize(self, state: ExtractState) -> str:
        """
        Encode tasks and results as ordered pair lists.

        Args:
            state: Snapshot to encode; its in-flight ids are ignored

        Returns:
            JSON document as a string
        """
        document = PersistedStateDTO(
            tasks=[(cid, ExtractionTaskDTO.from_domain(task)) for cid, task in state.tasks.items()],
            results=[(wid, ExtractResultDTO.from_domain(r)) for wid, r in state.results.items()],
        )
        return document.model_dump_json(by_alias=True, exclude_unset=True)

    def deserialize(self, blob: str | bytes | None) -> ExtractState:
        """
        Rebuild tasks and results from a persisted document.

        Args:
            blob: Stored JSON document, or None when nothing was stored

        Returns:
            ExtractState with an empty in-flight set; empty state on any failure
        """
        if not blob:
            return ExtractState()

        try:
            document = PersistedStateDTO.model_validate_json(blob)
        except ValidationError as e:
            logger.warning(
                "Discarding unreadable extraction state",
                extra={"extra_fields": {"error_count": e.error_count(), "error": str(e)[:500]}},
            )
            return ExtractState()
        except (ValueError, TypeError) as e:
            logger.warning(f"Discarding unreadable extraction state: {e}")
            return ExtractState()

        state = ExtractState(
            tasks={cid: dto.to_domain() for cid, dto in document.tasks},
            results={wid: dto.to_domain() for wid, dto in document.results},
        )
        logger.debug(
            "Extraction state restored",
            extra={"extra_fields": {"tasks": len(state.tasks), "results": len(state.results)}},
        )
        return state
