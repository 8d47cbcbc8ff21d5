"""Source and watcher protocols."""

from __future__ import annotations

from typing import Protocol

from result import Result

from .models import Descriptor, SourceError, UnsupportedFormatError, WatchError


class Watcher(Protocol):
    """Live subscription to a source's changes."""

    def next(self) -> Result[list[Descriptor], WatchError]:
        """Block until the source has new descriptors.

        Returns:
            Ok(descriptors) when the source changed.
            Err(WatchCancelledError) once the watcher has been stopped.
            Err(SourceError) on any other failure; callers may retry.
        """
        ...

    def stop(self) -> Result[None, SourceError]:
        """Release resources and wake up a blocked ``next`` call."""
        ...


class Source(Protocol):
    """Provider of configuration descriptors."""

    def load(self) -> Result[list[Descriptor], SourceError | UnsupportedFormatError]:
        """Snapshot the current configuration of this source."""
        ...

    def watch(self) -> Result[Watcher | None, SourceError]:
        """Return a watcher, or None when the source never changes."""
        ...
