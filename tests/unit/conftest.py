from __future__ import annotations

import logging
from typing import Any

import pytest
from pymongo.errors import CollectionInvalid


class FakeCollection:
    def __init__(self, name: str) -> None:
        self.name = name
        self.batches: list[list[dict[str, Any]]] = []
        self.error: Exception | None = None

    def insert_many(self, documents: list[dict[str, Any]]) -> None:
        self.batches.append(list(documents))
        if self.error is not None:
            raise self.error


class FakeDatabase:
    def __init__(self, name: str) -> None:
        self.name = name
        self.collections: dict[str, FakeCollection] = {}
        self.created: list[tuple[str, dict[str, Any]]] = []

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self.collections:
            self.collections[name] = FakeCollection(name)
        return self.collections[name]

    def list_collection_names(self, filter: dict[str, Any] | None = None) -> list[str]:  # noqa: A002
        names = [c for c, _ in self.created]
        if filter and "name" in filter:
            return [n for n in names if n == filter["name"]]
        return names

    def create_collection(self, name: str, **kwargs: Any) -> FakeCollection:
        if any(c == name for c, _ in self.created):
            raise CollectionInvalid(f"collection {name} already exists")
        self.created.append((name, kwargs))
        return self[name]


class FakeAdmin:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.commands: list[str] = []

    def command(self, name: str) -> dict[str, Any]:
        self.commands.append(name)
        if self.error is not None:
            raise self.error
        return {"ok": 1.0}


class FakeMongoClient:
    def __init__(self, *, ping_error: Exception | None = None, **kwargs: Any) -> None:
        self.kwargs = kwargs
        self.admin = FakeAdmin(ping_error)
        self.databases: dict[str, FakeDatabase] = {}
        self.closed = False

    def __getitem__(self, name: str) -> FakeDatabase:
        if name not in self.databases:
            self.databases[name] = FakeDatabase(name)
        return self.databases[name]

    def close(self) -> None:
        self.closed = True


class FakeClientFactory:
    """Stands in for `pymongo.MongoClient`; remembers every client it built."""

    def __init__(self) -> None:
        self.clients: list[FakeMongoClient] = []
        self.ping_error: Exception | None = None

    def __call__(self, **kwargs: Any) -> FakeMongoClient:
        client = FakeMongoClient(ping_error=self.ping_error, **kwargs)
        self.clients.append(client)
        return client

    @property
    def client(self) -> FakeMongoClient:
        return self.clients[-1]


@pytest.fixture
def client_factory() -> FakeClientFactory:
    return FakeClientFactory()


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase("logs")


@pytest.fixture(autouse=True)
def _restore_pymongo_log_level():
    """`MongoOutput.configure` sets the process-wide `pymongo` logger level; undo it per test."""
    pymongo_logger = logging.getLogger("pymongo")
    level = pymongo_logger.level
    yield
    pymongo_logger.setLevel(level)
