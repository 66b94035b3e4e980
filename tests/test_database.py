"""MongoConnectionManager lifecycle."""

from unittest.mock import MagicMock

import mongomock
import pytest
from pymongo.errors import ServerSelectionTimeoutError

from database import DatabaseNotInitializedError, MongoConnectionManager, create_document, get_documents
from schemas import Raider


def make_manager(factory):
    return MongoConnectionManager("mongodb://db:27017", "ridebite", client_factory=factory)


def test_get_handle_before_connect_raises():
    manager = make_manager(MagicMock())

    with pytest.raises(DatabaseNotInitializedError):
        manager.get_handle()


def test_connect_is_idempotent():
    factory = MagicMock()
    manager = make_manager(factory)

    first = manager.connect()
    second = manager.connect()

    assert first is second
    assert manager.get_handle() is first
    factory.assert_called_once()
    factory.return_value.admin.command.assert_called_once_with("ping")
    factory.return_value.__getitem__.assert_called_once_with("ridebite")


def test_connect_failure_exits_process():
    factory = MagicMock()
    factory.return_value.admin.command.side_effect = ServerSelectionTimeoutError("unreachable")
    manager = make_manager(factory)

    with pytest.raises(SystemExit) as exc_info:
        manager.connect()

    assert exc_info.value.code == 1
    assert not manager.is_connected


def test_ping_reports_driver_failures():
    factory = MagicMock()
    manager = make_manager(factory)
    assert manager.ping() is False

    manager.connect()
    assert manager.ping() is True

    factory.return_value.admin.command.side_effect = ServerSelectionTimeoutError("gone")
    assert manager.ping() is False


def test_close_clears_handle():
    factory = MagicMock()
    manager = make_manager(factory)
    manager.connect()

    manager.close()

    factory.return_value.close.assert_called_once()
    with pytest.raises(DatabaseNotInitializedError):
        manager.get_handle()


def test_document_helpers():
    db = mongomock.MongoClient()["helpers"]

    raider_id = create_document(db, "raiders", Raider(name="Kiran"))
    create_document(db, "raiders", {"name": "Anu", "rating": 5})

    assert db["raiders"].find_one({"_id": raider_id})["name"] == "Kiran"
    by_rating = get_documents(db, "raiders", sort=[("rating", -1)])
    assert [r["name"] for r in by_rating] == ["Anu", "Kiran"]
    assert len(get_documents(db, "raiders", {"name": "Anu"})) == 1
