from __future__ import annotations

import pytest
from result import is_ok

from cascade.config import Reader
from cascade.sources import EnvSource


def test_env_source_snapshots_prefixed_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CASCADE_TEST_SERVICE_NAME", "app")
    monkeypatch.setenv("CASCADE_TEST_DSN", "user's ${db.host} \\ path")
    monkeypatch.setenv("UNRELATED_SETTING", "ignored")

    result = EnvSource("CASCADE_TEST").load()

    descriptors = result.unwrap()
    assert len(descriptors) == 1
    descriptor = descriptors[0]
    assert descriptor.name == "environ"
    assert descriptor.format == "env"

    reader = Reader()
    assert is_ok(reader.merge(descriptor))
    assert reader.tree() == {"service": {"name": "app"}, "dsn": "user's ${db.host} \\ path"}


def test_env_source_skips_invalid_names(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CASCADE_TEST", "no name left")
    monkeypatch.setenv("CASCADE_TEST_OK", "yes")

    descriptor = EnvSource("CASCADE_TEST").load().unwrap()[0]

    assert descriptor.data == b"OK='yes'"


def test_env_source_is_static() -> None:
    assert EnvSource().watch().unwrap() is None
