import os
from enum import Enum
from pathlib import Path

from dotenv import load_dotenv


class StorageBackend(Enum):
    """Supported session storage backends."""
    MEMORY = "memory"
    FILE = "file"


DEFAULT_STORAGE_KEY = "extract-store"


class Config:
    """Configuration management for the extraction cache."""

    def __init__(self):
        """Initialize configuration with environment variables."""
        # Load environment variables from .env file if it exists
        env_path = Path(__file__).parent.parent / '.env'
        if env_path.exists():
            load_dotenv(dotenv_path=env_path)

        # Persistence
        self.EXTRACT_STORAGE_KEY = os.getenv('EXTRACT_STORAGE_KEY', DEFAULT_STORAGE_KEY)
        self.EXTRACT_STORAGE_DIR = os.getenv('EXTRACT_STORAGE_DIR') or None

        if self.EXTRACT_STORAGE_DIR:
            self.STORAGE_BACKEND = StorageBackend.FILE.value
        else:
            self.STORAGE_BACKEND = StorageBackend.MEMORY.value

    def validate(self) -> bool:
        """
        Validate that the persistence settings are usable.

        Returns:
            bool: True if configuration is valid, False otherwise
        """
        if not self.EXTRACT_STORAGE_KEY or not self.EXTRACT_STORAGE_KEY.strip():
            return False
        if self.STORAGE_BACKEND == StorageBackend.FILE.value:
            storage_dir = Path(self.EXTRACT_STORAGE_DIR)
            if storage_dir.exists() and not storage_dir.is_dir():
                return False
        return True

    def get_storage_info(self) -> str:
        """
        Get a short description of where extraction state is persisted.

        Returns:
            str: Formatted string with storage information
        """
        if self.STORAGE_BACKEND == StorageBackend.FILE.value:
            return f"file ({self.EXTRACT_STORAGE_DIR}, key={self.EXTRACT_STORAGE_KEY})"
        return f"memory (key={self.EXTRACT_STORAGE_KEY})"
