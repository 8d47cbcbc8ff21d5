"""Command-line flag source."""

from __future__ import annotations

import shlex
import sys
from collections.abc import Sequence

from result import Ok, Result

from cascade.config.models import Descriptor, SourceError
from cascade.config.protocol import Watcher
from cascade.constants import FLAG_DESCRIPTOR_NAME


class FlagSource:
    """``--dotted.key=value`` flags, taken from ``sys.argv`` unless given."""

    def __init__(self, args: Sequence[str] | None = None) -> None:
        self._args = list(sys.argv[1:] if args is None else args)

    def __repr__(self) -> str:
        return f"FlagSource(args={self._args!r})"

    def load(self) -> Result[list[Descriptor], SourceError]:
        data = shlex.join(self._args).encode("utf-8")
        return Ok([Descriptor(name=FLAG_DESCRIPTOR_NAME, format="flag", data=data)])

    def watch(self) -> Result[Watcher | None, SourceError]:
        return Ok(None)
