"""Delivery sinks that persist rendered export payloads."""

import logging
import sys
from pathlib import Path
from typing import Optional, Protocol, TextIO, Union


logger = logging.getLogger(__name__)


class DeliverySink(Protocol):
    """Anything that can take a rendered payload and store it somewhere."""

    def deliver(self, content: str, filename: str, mime_type: str) -> None:
        ...


class FileSink:
    """Write payloads as UTF-8 files into a directory."""

    def __init__(self, directory: Union[str, Path], overwrite: bool = True):
        self.directory = Path(directory).expanduser()
        self.overwrite = overwrite
        self.written = []  # Paths written by this sink, in order

    def deliver(self, content: str, filename: str, mime_type: str) -> None:
        """Write content to ``<directory>/<filename>``.

        Raises:
            ValueError: If the filename points outside the directory
            FileExistsError: If the file exists and overwrite is disabled
            OSError: If the directory or file cannot be written
        """
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / filename

        if path.resolve().parent != self.directory.resolve():
            raise ValueError(f"{filename!r} is not a plain file name inside {self.directory}")

        if path.exists() and not self.overwrite:
            raise FileExistsError(f"{path} already exists")

        # newline="" keeps CRLF line endings in calendar payloads intact
        with open(path, 'w', encoding='utf-8', newline='') as f:
            f.write(content)

        self.written.append(path)
        logger.debug("Wrote %s (%s, %d chars)", path, mime_type, len(content))


class StdoutSink:
    """Write payloads to a text stream instead of a file."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream

    def deliver(self, content: str, filename: str, mime_type: str) -> None:
        stream = self.stream or sys.stdout
        stream.write(content)
        if not content.endswith("\n"):
            stream.write("\n")
        stream.flush()
