import sqlite3

import pytest

from hours_tracker import create_app
from hours_tracker.storage import init_storage


@pytest.fixture
def app(tmp_path):
    return create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test",
            "DATABASE": str(tmp_path / "hours.db"),
        }
    )


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def conn():
    connection = sqlite3.connect(":memory:")
    init_storage(connection)
    yield connection
    connection.close()
