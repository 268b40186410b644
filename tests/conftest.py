"""
Shared fixtures: a fresh SQLite file per test and a TestClient per query mode.
"""

import pytest
from fastapi.testclient import TestClient

from core.config import QueryMode, Settings
from core.db import Database
from main import create_app


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "log.db")


@pytest.fixture
def database(db_path):
    db = Database(db_path)
    db.open()
    yield db
    db.close()


def make_client(db_path, mode):
    settings = Settings(database_path=db_path, query_mode=mode)
    return TestClient(create_app(settings))


@pytest.fixture
def client_factory(db_path):
    def factory(mode):
        return make_client(db_path, mode)

    return factory


@pytest.fixture
def structured_client(db_path):
    with make_client(db_path, QueryMode.STRUCTURED) as client:
        yield client


@pytest.fixture
def raw_client(db_path):
    with make_client(db_path, QueryMode.RAW) as client:
        yield client
