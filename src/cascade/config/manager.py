"""Configuration orchestrator: loading, caching, live updates and observers."""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from types import TracebackType

from pydantic import TypeAdapter, ValidationError
from result import Err, Ok, Result, is_err

from cascade.common import create_logger
from cascade.constants import ENV_DESCRIPTOR_NAME, FLAG_DESCRIPTOR_NAME, RETRY_INTERVAL_SECONDS
from cascade.utils import deep_merge

from .codecs import Decoder, decode
from .models import ConfigError, Descriptor, SourceError, SourceState, WatchCancelledError
from .protocol import Source, Watcher
from .reader import Reader
from .resolver import Resolver, resolve_placeholders
from .value import Value, scan_error

logger = create_logger("config")

type Observer = Callable[[Config], None]


@dataclass
class _SourceEntry:
    source: Source
    state: SourceState = SourceState.UNLOADED
    watcher: Watcher | None = None
    thread: threading.Thread | None = None

    @property
    def name(self) -> str:
        return repr(self.source)


class Config:
    """Aggregates sources into one resolved tree and keeps it live.

    Sources are merged in the order given, so later sources override earlier
    ones. Every source that returns a watcher gets a background thread which
    merges its updates, refreshes cached Values in place and notifies observers.
    """

    def __init__(
        self,
        *sources: Source,
        decoder: Decoder = decode,
        resolver: Resolver = resolve_placeholders,
        retry_interval: float = RETRY_INTERVAL_SECONDS,
    ) -> None:
        self._entries = [_SourceEntry(source) for source in sources]
        self._reader = Reader(decoder=decoder, resolver=resolver)
        self._resolver = resolver
        self._retry_interval = retry_interval

        self._descriptors: dict[str, Descriptor] = {}
        self._descriptors_lock = threading.Lock()
        self._cache: dict[str, Value] = {}
        self._cache_lock = threading.Lock()
        self._observers: list[Observer] = []
        self._observers_lock = threading.Lock()
        self._closed = threading.Event()

    def __enter__(self) -> Config:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def states(self) -> list[SourceState]:
        return [entry.state for entry in self._entries]

    @property
    def reader(self) -> Reader:
        return self._reader

    def load(self) -> Result[None, ConfigError]:
        """Load, merge and start watching every source, then resolve once.

        Stops at the first failing source; sources merged before it stay merged.
        """
        for entry in self._entries:
            load_result = entry.source.load()
            if is_err(load_result):
                logger.error("Config source load failed", source=entry.name, error=load_result.err_value.message)
                return load_result

            descriptors = load_result.ok_value
            merge_result = self._reader.merge(*descriptors)
            if is_err(merge_result):
                logger.error("Config merge failed", source=entry.name, error=merge_result.err_value.message)
                return merge_result

            with self._descriptors_lock:
                for descriptor in descriptors:
                    logger.debug("Loaded descriptor", name=descriptor.name, format=descriptor.format)
                    self._descriptors[descriptor.name] = descriptor
            entry.state = SourceState.LOADED

            watch_result = entry.source.watch()
            if is_err(watch_result):
                logger.error("Config source watch failed", source=entry.name, error=watch_result.err_value.message)
                return watch_result

            watcher = watch_result.ok_value
            if watcher is not None:
                self._start_watching(entry, watcher)

        return self._reader.resolve().inspect_err(
            lambda error: logger.error("Config resolve failed", error=error.message)
        )

    def scan[T](self, into: type[T]) -> Result[T, ConfigError]:
        """Decode the whole configuration into ``into``.

        Environment values override file values and flag values override both,
        regardless of the order the sources were registered in.
        """
        merged = self._reader.raw_tree()
        for name in (ENV_DESCRIPTOR_NAME, FLAG_DESCRIPTOR_NAME):
            with self._descriptors_lock:
                descriptor = self._descriptors.get(name)
            if descriptor is None:
                continue
            overlay = self._reader.decode(descriptor)
            if is_err(overlay):
                return overlay
            merged = deep_merge(merged, overlay.ok_value)

        self._resolver(merged)

        try:
            return Ok(TypeAdapter(into).validate_python(merged))
        except ValidationError as exc:
            error = scan_error(into, exc)
            logger.warning("Config scan failed", target=error.target, field=error.field, error=error.message)
            return Err(error)

    def watch(self, observer: Observer) -> None:
        """Register an observer called with this Config after every change."""
        with self._observers_lock:
            self._observers.append(observer)

    def get(self, path: str) -> Value:
        """Return the cached Value for ``path``, creating it on first access.

        Absent paths yield a not-found Value, which is cached as well.
        """
        with self._cache_lock:
            cached = self._cache.get(path)
            if cached is not None:
                return cached
            value = self._reader.value(path) or Value.not_found(path)
            self._cache[path] = value
            return value

    def close(self) -> Result[None, SourceError]:
        """Stop every watcher; returns the first stop failure."""
        self._closed.set()
        first_error: Err[SourceError] | None = None

        for entry in self._entries:
            if entry.watcher is not None:
                stop_result = entry.watcher.stop()
                if is_err(stop_result):
                    logger.warning("Watcher stop failed", source=entry.name, error=stop_result.err_value.message)
                    if first_error is None:
                        first_error = stop_result
            entry.state = SourceState.CLOSED

        for entry in self._entries:
            if entry.thread is not None and entry.thread is not threading.current_thread():
                entry.thread.join(timeout=self._retry_interval + 1)

        with self._cache_lock:
            self._cache.clear()
        with self._descriptors_lock:
            self._descriptors.clear()

        return first_error if first_error is not None else Ok(None)

    def _start_watching(self, entry: _SourceEntry, watcher: Watcher) -> None:
        entry.watcher = watcher
        entry.thread = threading.Thread(
            target=self._watch_loop,
            args=(entry, watcher),
            name=f"cascade-watch-{entry.name}",
            daemon=True,
        )
        entry.state = SourceState.WATCHING
        entry.thread.start()
        logger.debug("Watching config source", source=entry.name)

    def _watch_loop(self, entry: _SourceEntry, watcher: Watcher) -> None:
        while True:
            next_result = watcher.next()
            if is_err(next_result):
                error = next_result.err_value
                if isinstance(error, WatchCancelledError) or self._closed.is_set():
                    logger.debug("Watcher cancelled", source=entry.name)
                    return
                logger.warning("Failed to watch next config", source=entry.name, error=error.message)
                if self._closed.wait(self._retry_interval):
                    return
                continue

            self._apply(entry, next_result.ok_value)

    def _apply(self, entry: _SourceEntry, descriptors: list[Descriptor]) -> None:
        merge_result = self._reader.merge(*descriptors)
        if is_err(merge_result):
            logger.warning("Failed to merge next config", source=entry.name, error=merge_result.err_value.message)
            return

        resolve_result = self._reader.resolve()
        if is_err(resolve_result):
            logger.warning("Failed to resolve next config", source=entry.name, error=resolve_result.err_value.message)
            return

        self._refresh_cache()

        if self._register(descriptors):
            self._notify()

    def _refresh_cache(self) -> None:
        with self._cache_lock:
            cached = list(self._cache.items())

        evicted: list[tuple[str, Value]] = []
        for path, value in cached:
            fresh = self._reader.value(path)
            if fresh is None:
                continue

            current, updated = value.load(), fresh.load()
            if not value.found or type(current) is not type(updated):
                evicted.append((path, value))
            elif current != updated:
                value.store(updated)
                logger.debug("Updated cached value", path=path)

        if not evicted:
            return

        with self._cache_lock:
            for path, value in evicted:
                if self._cache.get(path) is value:
                    del self._cache[path]
                    logger.debug("Evicted cached value", path=path)

    def _register(self, descriptors: list[Descriptor]) -> bool:
        changed = False
        with self._descriptors_lock:
            for descriptor in descriptors:
                if self._descriptors.get(descriptor.name) != descriptor:
                    self._descriptors[descriptor.name] = descriptor
                    changed = True
        return changed

    def _notify(self) -> None:
        with self._observers_lock:
            observers = list(self._observers)

        for observer in observers:
            try:
                observer(self)
            except Exception:
                logger.exception("Config observer failed")
