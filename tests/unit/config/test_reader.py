from __future__ import annotations

import json

import pytest
from result import is_err, is_ok

from cascade.config.models import DecodeError, Descriptor, PathError, UnsupportedFormatError
from cascade.config.reader import Reader

BASE = Descriptor(name="base.json", format="json", data=b'{"a": {"b": {"X": 1, "Y": "lol", "z": true}}, "port": 80}')
OVERRIDE = Descriptor(name="override.yaml", format="yaml", data=b"a:\n  b:\n    X: 2\nport: 8080\n")


@pytest.fixture
def reader() -> Reader:
    reader = Reader()
    assert is_ok(reader.merge(BASE))
    return reader


def test_merge_rejects_malformed_descriptor() -> None:
    reader = Reader()

    result = reader.merge(Descriptor(name="bad.json", format="json", data=b"bad"))

    assert is_err(result)
    assert isinstance(result.unwrap_err(), DecodeError)
    assert reader.tree() == {}


def test_merge_rejects_unknown_format() -> None:
    result = Reader().merge(Descriptor(name="app.toml", format="toml", data=b"a = 1"))

    assert isinstance(result.unwrap_err(), UnsupportedFormatError)


def test_merge_is_all_or_nothing(reader: Reader) -> None:
    result = reader.merge(OVERRIDE, Descriptor(name="bad.json", format="json", data=b"{"))

    assert is_err(result)
    assert reader.value("port").as_int().unwrap() == 80


def test_later_descriptor_wins(reader: Reader) -> None:
    assert is_ok(reader.merge(OVERRIDE))

    assert reader.tree() == {"a": {"b": {"X": 2, "Y": "lol", "z": True}}, "port": 8080}


def test_earlier_descriptor_loses_in_reverse_order() -> None:
    reader = Reader()

    assert is_ok(reader.merge(OVERRIDE, BASE))

    assert reader.tree()["port"] == 80
    assert reader.tree()["a"]["b"]["X"] == 1


def test_merge_replaces_scalar_with_mapping(reader: Reader) -> None:
    assert is_ok(reader.merge(Descriptor(name="p.json", format="json", data=b'{"port": {"http": 80}}')))

    assert reader.tree()["port"] == {"http": 80}


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("a.b.X", 1),
        ("a.b.Y", "lol"),
        ("a.b.z", True),
        ("a.b", {"X": 1, "Y": "lol", "z": True}),
    ],
)
def test_value_lookup(reader: Reader, path: str, expected: object) -> None:
    value = reader.value(path)

    assert value is not None
    assert value.path == path
    assert value.raw().unwrap() == expected


@pytest.mark.parametrize("path", ["a.b.Y.", "", "a..b", "a.b.missing", "port.x", "missing"])
def test_value_lookup_misses(reader: Reader, path: str) -> None:
    assert reader.value(path) is None


def test_value_is_detached_from_tree(reader: Reader) -> None:
    value = reader.value("a.b")
    assert value is not None

    value.raw().unwrap()["X"] = 99

    assert reader.value("a.b.X").raw().unwrap() == 1


def test_scalar_descriptor_without_format(reader: Reader) -> None:
    assert is_ok(reader.merge(Descriptor(name="a.b.Y", data=b"override")))

    assert reader.value("a.b.Y").raw().unwrap() == "override"


def test_scalar_descriptor_with_bad_name() -> None:
    result = Reader().merge(Descriptor(name="a..b", data=b"x"))

    error = result.unwrap_err()
    assert isinstance(error, PathError)
    assert error.path == "a..b"


def test_source_is_canonical_json() -> None:
    reader = Reader()
    assert is_ok(reader.merge(Descriptor(name="x.json", format="json", data=b'{"a": {"b": {"X": 1}}}')))

    assert reader.source().unwrap() == b'{"a":{"b":{"X":1}}}'


def test_source_decodes_back_to_tree(reader: Reader) -> None:
    assert is_ok(reader.merge(OVERRIDE))

    assert json.loads(reader.source().unwrap()) == reader.tree()


def test_resolve_expands_placeholders() -> None:
    reader = Reader()
    data = b'{"host": "db", "dsn": "${host}:${port:5432}"}'
    assert is_ok(reader.merge(Descriptor(name="db.json", format="json", data=data)))

    assert is_ok(reader.resolve())

    assert reader.value("dsn").raw().unwrap() == "db:5432"


def test_resolve_reports_resolver_failure() -> None:
    def failing(tree: dict[str, object]) -> None:
        raise ValueError("boom")

    reader = Reader(resolver=failing)

    result = reader.resolve()

    error = result.unwrap_err()
    assert isinstance(error, DecodeError)
    assert "boom" in error.message


def test_resolve_twice_keeps_substituted_dollar_literal() -> None:
    reader = Reader()
    data = b'{"x": "$", "y": "${x}{secret}", "secret": "leak"}'
    assert is_ok(reader.merge(Descriptor(name="tricky.json", format="json", data=data)))

    assert is_ok(reader.resolve())
    assert is_ok(reader.resolve())

    assert reader.value("y").raw().unwrap() == "${secret}"
    assert reader.raw_tree()["y"] == "${x}{secret}"


def test_resolve_after_merge_follows_updated_reference() -> None:
    reader = Reader()
    assert is_ok(reader.merge(Descriptor(name="a.json", format="json", data=b'{"host": "a", "url": "http://${host}"}')))
    assert is_ok(reader.resolve())

    assert is_ok(reader.merge(Descriptor(name="b.json", format="json", data=b'{"host": "b"}')))
    assert is_ok(reader.resolve())

    assert reader.value("url").raw().unwrap() == "http://b"


def test_failed_resolve_keeps_served_tree() -> None:
    calls: list[int] = []

    def flaky(tree: dict[str, object]) -> None:
        calls.append(1)
        if len(calls) > 1:
            raise ValueError("boom")
        tree["resolved"] = True

    reader = Reader(resolver=flaky)
    assert is_ok(reader.resolve())

    assert is_err(reader.resolve())

    assert reader.tree() == {"resolved": True}


def test_yaml_timestamps_round_trip_through_source() -> None:
    reader = Reader()
    data = b"released: 2024-01-02\nbuilt: 2024-01-02T03:04:05\n"
    assert is_ok(reader.merge(Descriptor(name="release.yaml", format="yaml", data=data)))

    assert json.loads(reader.source().unwrap()) == reader.tree()
    assert reader.value("released").as_str().unwrap() == "2024-01-02"
