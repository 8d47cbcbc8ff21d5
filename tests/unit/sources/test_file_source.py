from __future__ import annotations

import os
import threading
from collections.abc import Iterator
from pathlib import Path

import pytest
from result import Result

from cascade.config import Config
from cascade.config.models import Descriptor, SourceError, UnsupportedFormatError, WatchCancelledError, WatchError
from cascade.sources import FileSource, FileWatcher

WAIT_SECONDS = 5.0


def _replace(path: Path, text: str) -> None:
    """Swap file content atomically so the watcher never sees a half-written file."""
    staging = path.parent / f".{path.name}.tmp"
    staging.write_text(text, encoding="utf-8")
    os.replace(staging, path)


def _next_in_thread(watcher: FileWatcher) -> tuple[threading.Thread, list[Result[list[Descriptor], WatchError]]]:
    results: list[Result[list[Descriptor], WatchError]] = []
    thread = threading.Thread(target=lambda: results.append(watcher.next()), daemon=True)
    thread.start()
    return thread, results


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "app.yaml"
    path.write_text("server:\n  port: 80\n", encoding="utf-8")
    return path


def test_load_single_file(config_file: Path) -> None:
    descriptors = FileSource(config_file).load().unwrap()

    assert descriptors == [Descriptor(name="app.yaml", format="yaml", data=b"server:\n  port: 80\n")]


def test_load_directory_skips_hidden_and_unsupported(tmp_path: Path) -> None:
    (tmp_path / "b.json").write_text("{}", encoding="utf-8")
    (tmp_path / "a.yml").write_text("a: 1\n", encoding="utf-8")
    (tmp_path / ".secret.json").write_text("{}", encoding="utf-8")
    (tmp_path / "README.md").write_text("docs", encoding="utf-8")
    (tmp_path / "nested.json").mkdir()

    descriptors = FileSource(tmp_path).load().unwrap()

    assert [descriptor.name for descriptor in descriptors] == ["a.yml", "b.json"]
    assert [descriptor.format for descriptor in descriptors] == ["yml", "json"]


def test_load_unsupported_file(tmp_path: Path) -> None:
    path = tmp_path / "app.toml"
    path.write_text("a = 1", encoding="utf-8")

    error = FileSource(path).load().unwrap_err()

    assert isinstance(error, UnsupportedFormatError)
    assert error.format == "toml"


def test_load_missing_file(tmp_path: Path) -> None:
    error = FileSource(tmp_path / "missing.json").load().unwrap_err()

    assert isinstance(error, SourceError)


@pytest.fixture
def watcher(config_file: Path) -> Iterator[FileWatcher]:
    watcher = FileSource(config_file).watch().unwrap()
    assert isinstance(watcher, FileWatcher)
    yield watcher
    watcher.stop()


def test_watcher_reports_rewritten_file(config_file: Path, watcher: FileWatcher) -> None:
    thread, results = _next_in_thread(watcher)

    _replace(config_file, "server:\n  port: 8080\n")
    thread.join(WAIT_SECONDS)

    assert not thread.is_alive()
    assert results[0].unwrap() == [Descriptor(name="app.yaml", format="yaml", data=b"server:\n  port: 8080\n")]


def test_watcher_ignores_unrelated_files(config_file: Path, watcher: FileWatcher) -> None:
    thread, results = _next_in_thread(watcher)

    _replace(config_file.parent / "other.yaml", "other: true\n")
    _replace(config_file, "server:\n  port: 9090\n")
    thread.join(WAIT_SECONDS)

    assert not thread.is_alive()
    assert results[0].unwrap()[0].data == b"server:\n  port: 9090\n"


def test_watcher_reports_removed_file(config_file: Path, watcher: FileWatcher) -> None:
    thread, results = _next_in_thread(watcher)

    config_file.unlink()
    thread.join(WAIT_SECONDS)

    assert not thread.is_alive()
    assert isinstance(results[0].unwrap_err(), SourceError)


def test_directory_watcher_picks_up_new_files(tmp_path: Path) -> None:
    watcher = FileSource(tmp_path).watch().unwrap()
    assert watcher is not None
    try:
        thread, results = _next_in_thread(watcher)

        _replace(tmp_path / "extra.json", '{"extra": 1}')
        thread.join(WAIT_SECONDS)

        assert not thread.is_alive()
        assert results[0].unwrap() == [Descriptor(name="extra.json", format="json", data=b'{"extra": 1}')]
    finally:
        watcher.stop()


def test_stop_wakes_blocked_next(watcher: FileWatcher) -> None:
    thread, results = _next_in_thread(watcher)

    assert watcher.stop().unwrap() is None
    thread.join(WAIT_SECONDS)

    assert not thread.is_alive()
    assert isinstance(results[0].unwrap_err(), WatchCancelledError)
    assert isinstance(watcher.next().unwrap_err(), WatchCancelledError)


def test_stop_is_idempotent(watcher: FileWatcher) -> None:
    assert watcher.stop().unwrap() is None
    assert watcher.stop().unwrap() is None


def test_config_follows_file_changes(config_file: Path) -> None:
    with Config(FileSource(config_file)) as config:
        assert config.load().unwrap() is None
        port = config.get("server.port")
        changed = threading.Event()
        config.watch(lambda _: changed.set())

        _replace(config_file, "server:\n  port: 8080\n")

        assert changed.wait(WAIT_SECONDS)
        assert port.as_int().unwrap() == 8080


def test_watcher_skips_foreign_queue_items(config_file: Path, watcher: FileWatcher) -> None:
    watcher._events.put("not a path")
    thread, results = _next_in_thread(watcher)

    _replace(config_file, "server:\n  port: 7070\n")
    thread.join(WAIT_SECONDS)

    assert not thread.is_alive()
    assert results[0].unwrap()[0].data == b"server:\n  port: 7070\n"
