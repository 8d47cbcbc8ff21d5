"""Environment variable source."""

from __future__ import annotations

import os
import re

from result import Ok, Result

from cascade.common import create_logger
from cascade.config.models import Descriptor, SourceError
from cascade.config.protocol import Watcher
from cascade.constants import ENV_DESCRIPTOR_NAME

logger = create_logger("sources.env")

_KEY = re.compile(r"[A-Za-z0-9_.-]+")


class EnvSource:
    """Snapshot of the environment variables starting with ``prefix``.

    ``APP_LOG_LEVEL=debug`` with prefix ``APP_`` becomes ``log.level``.
    """

    def __init__(self, prefix: str = "") -> None:
        self._prefix = prefix

    def __repr__(self) -> str:
        return f"EnvSource(prefix={self._prefix!r})"

    def load(self) -> Result[list[Descriptor], SourceError]:
        lines: list[str] = []
        for key, value in os.environ.items():
            if not key.startswith(self._prefix):
                continue
            name = key[len(self._prefix) :].removeprefix("_")
            if not name or not _KEY.fullmatch(name):
                continue
            lines.append(f"{name}={_quote(value)}")

        logger.debug("Environment snapshot taken", prefix=self._prefix, count=len(lines))
        return Ok([Descriptor(name=ENV_DESCRIPTOR_NAME, format="env", data="\n".join(lines).encode("utf-8"))])

    def watch(self) -> Result[Watcher | None, SourceError]:
        return Ok(None)


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"
