"""Factory for creating the extraction task registry from environment configuration."""

from config.config import Config, StorageBackend
from utils.logger import get_logger

from .contracts import WebPageExtractor
from .notifier import Notifier
from .registry import TaskRegistry
from .storage import FileSessionStorage, MemorySessionStorage, SessionStorage

logger = get_logger(__name__)

# Process-wide registry shared by every consumer
_registry: TaskRegistry | None = None


def create_storage_from_config(config: Config) -> SessionStorage:
    """
    Build the session storage selected by configuration.

    EXTRACT_STORAGE_DIR set -> FileSessionStorage under that directory,
    otherwise in-process MemorySessionStorage.
    """
    if config.STORAGE_BACKEND == StorageBackend.FILE.value:
        return FileSessionStorage(config.EXTRACT_STORAGE_DIR)
    return MemorySessionStorage()


def create_registry_from_env(
    extractor: WebPageExtractor, notifier: Notifier | None = None
) -> TaskRegistry:
    """
    Create a TaskRegistry from environment variables.

    Environment variables:
        EXTRACT_STORAGE_KEY: Key of the persisted document (default: extract-store)
        EXTRACT_STORAGE_DIR: Directory for file-backed session storage (default: in-memory)

    Args:
        extractor: Async collaborator performing extraction calls
        notifier: Optional notification sink

    Returns:
        Configured TaskRegistry instance

    Raises:
        ValueError: If the storage configuration is unusable
    """
    config = Config()
    if not config.validate():
        raise ValueError(f"Invalid extraction storage configuration: {config.get_storage_info()}")

    logger.info(f"Extraction state persisted to {config.get_storage_info()}")
    return TaskRegistry(
        extractor=extractor,
        notifier=notifier,
        storage=create_storage_from_config(config),
        storage_key=config.EXTRACT_STORAGE_KEY,
    )


def set_registry(registry: TaskRegistry | None) -> None:
    """Install (or, with None, reset) the process-wide registry."""
    global _registry
    _registry = registry


def get_registry() -> TaskRegistry:
    """
    Get the process-wide registry.

    Raises:
        RuntimeError: If no registry has been installed with set_registry()
    """
    if _registry is None:
        raise RuntimeError("Extraction registry not configured; call set_registry() first")
    return _registry
