"""File and directory source with watchdog-based change notification."""

from __future__ import annotations

import os
import queue
import threading
from pathlib import Path
from typing import Final

from result import Err, Ok, Result, is_err
from watchdog.events import FileSystemEvent, FileSystemEventHandler, FileSystemMovedEvent
from watchdog.observers import Observer

from cascade.common import create_logger
from cascade.config.codecs import SUPPORTED_FORMATS, format_from_filename
from cascade.config.models import (
    Descriptor,
    SourceError,
    UnsupportedFormatError,
    WatchCancelledError,
    WatchError,
)

logger = create_logger("sources.file")

_STOP: Final = object()


class FileSource:
    """A single config file, or every supported non-hidden file in a directory.

    The file extension selects the format; descriptors are named after the file.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser().resolve()

    def __repr__(self) -> str:
        return f"FileSource({str(self._path)!r})"

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Result[list[Descriptor], SourceError | UnsupportedFormatError]:
        if self._path.is_dir():
            return self._load_dir()
        return self.load_file(self._path).map(lambda descriptor: [descriptor])

    def watch(self) -> Result[FileWatcher | None, SourceError]:
        try:
            return Ok(FileWatcher(self))
        except OSError as exc:
            logger.error("Failed to start file watcher", path=str(self._path), error=str(exc))
            return Err(SourceError(source=str(self._path), message=f"Failed to watch: {exc}"))

    def watches(self, path: Path) -> bool:
        """Tell whether a filesystem event on ``path`` concerns this source."""
        if not self._path.is_dir():
            return path == self._path
        return path.parent == self._path and _is_candidate(path)

    def load_file(self, path: Path) -> Result[Descriptor, SourceError | UnsupportedFormatError]:
        file_format = format_from_filename(path.name)
        if file_format not in SUPPORTED_FORMATS:
            return Err(
                UnsupportedFormatError(
                    name=path.name,
                    format=file_format,
                    message=f"Unsupported config file format '{file_format}' ({path}).",
                )
            )

        try:
            data = path.read_bytes()
        except OSError as exc:
            logger.error("Config file read error", path=str(path), error=str(exc))
            return Err(SourceError(source=str(path), message=str(exc)))

        logger.debug("Loaded config file", path=str(path), format=file_format)
        return Ok(Descriptor(name=path.name, format=file_format, data=data))

    def _load_dir(self) -> Result[list[Descriptor], SourceError | UnsupportedFormatError]:
        try:
            entries = sorted(self._path.iterdir())
        except OSError as exc:
            return Err(SourceError(source=str(self._path), message=str(exc)))

        descriptors: list[Descriptor] = []
        for entry in entries:
            if entry.is_dir() or not _is_candidate(entry):
                continue
            result = self.load_file(entry)
            if is_err(result):
                return result
            descriptors.append(result.ok_value)
        return Ok(descriptors)


class FileWatcher:
    """Blocks in ``next`` until a watched file is written, created or removed."""

    def __init__(self, source: FileSource) -> None:
        self._source = source
        self._events: queue.Queue[Path | object] = queue.Queue()
        self._stopped = threading.Event()

        directory = source.path if source.path.is_dir() else source.path.parent
        self._observer = Observer()
        self._observer.schedule(_QueueingHandler(self._events), str(directory), recursive=False)
        self._observer.daemon = True
        self._observer.start()
        logger.debug("File watcher started", path=str(source.path))

    def next(self) -> Result[list[Descriptor], WatchError]:
        while not self._stopped.is_set():
            item = self._events.get()
            if item is _STOP:
                break
            if not isinstance(item, Path) or not self._source.watches(item):
                continue

            if not item.exists():
                return Err(SourceError(source=str(item), message=f"Config file '{item}' was removed."))
            return self._source.load_file(item).map(lambda descriptor: [descriptor])

        return Err(WatchCancelledError(source=str(self._source.path)))

    def stop(self) -> Result[None, SourceError]:
        if self._stopped.is_set():
            return Ok(None)
        self._stopped.set()
        self._events.put(_STOP)

        try:
            self._observer.stop()
            self._observer.join(timeout=5)
        except RuntimeError as exc:
            return Err(SourceError(source=str(self._source.path), message=f"Failed to stop watcher: {exc}"))

        logger.debug("File watcher stopped", path=str(self._source.path))
        return Ok(None)


class _QueueingHandler(FileSystemEventHandler):
    def __init__(self, events: queue.Queue[Path | object]) -> None:
        self._events = events

    def on_created(self, event: FileSystemEvent) -> None:
        self._enqueue(event.src_path, event)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._enqueue(event.src_path, event)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._enqueue(event.src_path, event)

    def on_moved(self, event: FileSystemMovedEvent) -> None:
        self._enqueue(event.src_path, event)
        self._enqueue(event.dest_path, event)

    def _enqueue(self, raw_path: str | bytes, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._events.put(Path(os.fsdecode(raw_path)).resolve())


def _is_candidate(path: Path) -> bool:
    return not path.name.startswith(".") and format_from_filename(path.name) in SUPPORTED_FORMATS
