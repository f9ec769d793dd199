"""
File store used for loading scripts and for the L and W script commands.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List

from protocom.utils.exceptions import FileError


logger = logging.getLogger(__name__)


class FileStoreInterface(ABC):
    """Abstract base class for line-oriented file access."""

    @abstractmethod
    def read_all_lines(self, path: str) -> List[str]:
        """
        Read a text file.

        Returns:
            Lines without their terminators.

        Raises:
            FileError: If the file cannot be read.
        """
        pass

    @abstractmethod
    def append_line(self, path: str, text: str) -> None:
        """
        Append one line (a newline is added).

        Raises:
            FileError: If the file cannot be written.
        """
        pass


class LocalFileStore(FileStoreInterface):
    """File store backed by the local file system."""

    def __init__(self, base_dir: str = "."):
        """
        Args:
            base_dir: Directory that relative paths are resolved against.
        """
        self._base_dir = Path(base_dir)

    def _resolve(self, path: str) -> Path:
        p = Path(path)
        return p if p.is_absolute() else self._base_dir / p

    def read_all_lines(self, path: str) -> List[str]:
        file_path = self._resolve(path)
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                return f.read().splitlines()
        except (IOError, UnicodeDecodeError) as e:
            raise FileError(f"Failed to read {file_path}: {e}") from e

    def append_line(self, path: str, text: str) -> None:
        file_path = self._resolve(path)
        try:
            with open(file_path, "a", encoding="utf-8") as f:
                f.write(text + "\n")
        except IOError as e:
            raise FileError(f"Failed to write {file_path}: {e}") from e

        logger.debug(f"Appended {len(text)} chars to {file_path}")
