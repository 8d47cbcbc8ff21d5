"""cascade - layered configuration from files, environment and flags.

By default, cascade's internal logging is disabled when used as a library.
Library users can enable logging by calling cascade.enable_logging().
"""

from cascade.common import disable_library_logging, enable_library_logging
from cascade.config import Config, Descriptor, Reader, Value
from cascade.sources import EnvSource, FileSource, FlagSource

disable_library_logging()

enable_logging = enable_library_logging

__all__ = [
    "Config",
    "Descriptor",
    "EnvSource",
    "FileSource",
    "FlagSource",
    "Reader",
    "Value",
    "enable_logging",
]
