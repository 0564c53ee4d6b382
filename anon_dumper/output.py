"""
Append-only destinations for the generated dump.
"""

import gzip
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, TextIO

from .exceptions import OutputError


class OutputSink(ABC):
    """Append-only text target."""

    def __enter__(self) -> "OutputSink":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def open(self) -> None:
        """Prepare the target for writing."""

    @abstractmethod
    def write(self, text: str) -> None:
        """Append text to the target."""

    def close(self) -> None:
        """Flush and release the target."""


class MemorySink(OutputSink):
    """Collects the dump in memory."""

    def __init__(self):
        self._parts: list[str] = []

    def write(self, text: str) -> None:
        self._parts.append(text)

    def getvalue(self) -> str:
        return ''.join(self._parts)


class FileSink(OutputSink):
    """Writes the dump to a file, optionally gzip-compressed."""

    def __init__(self, path: str, compress: bool = False):
        self.path = Path(path)
        if compress and self.path.suffix != '.gz':
            self.path = Path(str(self.path) + '.gz')
        self.compress = compress
        self._handle: Optional[TextIO] = None

    def open(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            if self.compress:
                self._handle = gzip.open(self.path, 'wt', encoding='utf-8')
            else:
                self._handle = open(self.path, 'w', encoding='utf-8')
        except OSError as e:
            raise OutputError(f"Cannot open '{self.path}': {e}") from e
        logging.debug(f"Writing dump to {self.path}")

    def write(self, text: str) -> None:
        if self._handle is None:
            self.open()
        try:
            self._handle.write(text)
        except OSError as e:
            raise OutputError(f"Cannot write to '{self.path}': {e}") from e

    def close(self) -> None:
        if self._handle is not None:
            try:
                self._handle.close()
            except OSError as e:
                raise OutputError(f"Cannot close '{self.path}': {e}") from e
            finally:
                self._handle = None
