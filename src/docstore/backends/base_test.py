"""
Tests for backend helpers and backend resolution.

Run with: DOCSTORE_ENV=test pytest src/docstore/backends/base_test.py -v
"""
import pytest

from docstore import backends
from docstore.backends import MemoryBackend, PostgresBackend
from docstore.backends.base import distance, find_near, project, resolve
from docstore.config import config
from docstore.errors import UnknownBackend


@pytest.fixture
def fresh_registry(monkeypatch):
    monkeypatch.setattr(backends, "_default_backend", None)
    monkeypatch.setattr(backends, "_backend_override", None)


class TestHelpers:
    @pytest.mark.parametrize("path,expected", [
        ("a", (True, {"b": [1, 2]})),
        ("a.b", (True, [1, 2])),
        ("a.b.1", (True, 2)),
        ("a.b.5", (False, None)),
        ("a.c", (False, None)),
    ])
    def test_resolve(self, path, expected):
        assert resolve({"a": {"b": [1, 2]}}, path) == expected

    def test_project(self):
        doc = {"_id": "1", "name": "Ada", "age": 36}

        assert project(doc, {}) == doc
        assert project(doc, {"name": 1}) == {"_id": "1", "name": "Ada"}
        assert project(doc, {"age": 0}) == {"_id": "1", "name": "Ada"}

    def test_find_near(self):
        assert find_near({"name": "Ada", "hq": {"$near": (1, 2)}}) == ("hq", [1, 2])
        assert find_near({"name": "Ada"}) is None

    def test_distance_of_non_point_is_infinite(self):
        assert distance("x", [0, 0]) == float("inf")
        assert distance([3, 4], [0, 0]) == 25


class TestGetBackend:
    @pytest.mark.parametrize("name,klass", [
        ("memory", MemoryBackend),
        ("postgres", PostgresBackend),
    ])
    def test_configured_backend(self, fresh_registry, monkeypatch, name, klass):
        monkeypatch.setattr(config, "backend", name)

        backend = backends.get_backend()

        assert isinstance(backend, klass)
        assert backends.get_backend() is backend

    def test_unknown_backend(self, fresh_registry, monkeypatch):
        monkeypatch.setattr(config, "backend", "cassandra")

        with pytest.raises(UnknownBackend, match="cassandra"):
            backends.get_backend()

    def test_override_wins(self, fresh_registry):
        override = MemoryBackend()
        backends.set_backend(override)
        try:
            assert backends.get_backend() is override
        finally:
            backends.clear_backend()
