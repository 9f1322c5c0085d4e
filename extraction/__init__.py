"""Extraction task and result cache."""

from .codec import PersistenceCodec
from .contracts import ExtractWebPageRequest, WebPageExtractor, sync_extractor
from .factory import create_registry_from_env, get_registry, set_registry
from .inflight import InFlightSet
from .notifier import LoggingNotifier, Notifier
from .registry import TaskRegistry, merge_results
from .result_cache import ResultCache
from .state import ExtractState, ExtractStateContainer
from .storage import FileSessionStorage, MemorySessionStorage, SessionStorage

__all__ = [
    "ExtractState",
    "ExtractStateContainer",
    "ExtractWebPageRequest",
    "FileSessionStorage",
    "InFlightSet",
    "LoggingNotifier",
    "MemorySessionStorage",
    "Notifier",
    "PersistenceCodec",
    "ResultCache",
    "SessionStorage",
    "TaskRegistry",
    "WebPageExtractor",
    "create_registry_from_env",
    "get_registry",
    "merge_results",
    "set_registry",
    "sync_extractor",
]
