"""Built-in configuration sources."""

from .env import EnvSource
from .file import FileSource, FileWatcher
from .flag import FlagSource

__all__ = [
    "EnvSource",
    "FileSource",
    "FileWatcher",
    "FlagSource",
]
