import logging
import os
from typing import Any, Iterator, List

logger = logging.getLogger(__name__)


class FileCleanup:
    """Tracks temporary files that must not outlive an operation

    Used as a context manager, every registered file that has not been
    released is removed on exit, whether or not the block raised.
    """

    def __init__(self) -> None:
        self._files: List[str] = []

    def register(self, path: str) -> None:
        """Register a file to be removed at cleanup"""
        self._files.append(path)

    def release(self, path: str) -> None:
        """Stop tracking a file, e.g. once it has been renamed into place"""
        self._files.remove(path)

    @property
    def files(self) -> Iterator[str]:
        """Get files registered for cleanup"""
        return iter(self._files)

    def cleanup(self) -> None:
        """Remove registered files"""

        for f in self._files:
            try:
                os.remove(f)
            except FileNotFoundError:
                pass
            except OSError as err:
                logger.warning("Failed to remove temporary file %s: %s", f, err)

        self._files = []

    def __enter__(self) -> "FileCleanup":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.cleanup()
