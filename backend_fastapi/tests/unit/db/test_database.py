import pytest
from unittest.mock import patch, MagicMock

from mongoengine.errors import NotUniqueError
from pymongo.errors import DuplicateKeyError

from workboard.db.database import Database, save_document, delete_document, update_matching, delete_matching

pytestmark = [pytest.mark.unit, pytest.mark.db]

@pytest.fixture
def mock_session() -> MagicMock:
    return MagicMock()

@pytest.fixture
def mock_get_connection(mock_session):
    with patch('workboard.db.database.get_connection') as mock_conn:
        mock_conn.return_value.start_session.return_value = mock_session
        yield mock_conn

@pytest.fixture
def transactional_db() -> Database:
    return Database("mongodb://localhost:27017", "workboard_unit", use_transactions=True)

# === transaction ===
def test_transaction_commits_and_ends_session(transactional_db, mock_get_connection, mock_session):
    with transactional_db.transaction("seed") as session:
        assert session is mock_session

    mock_session.start_transaction.assert_called_once()
    mock_session.commit_transaction.assert_called_once()
    mock_session.abort_transaction.assert_not_called()
    mock_session.end_session.assert_called_once()

def test_transaction_aborts_and_reraises(transactional_db, mock_get_connection, mock_session):
    with pytest.raises(ValueError, match="half written"):
        with transactional_db.transaction("seed"):
            raise ValueError("half written")

    mock_session.abort_transaction.assert_called_once()
    mock_session.commit_transaction.assert_not_called()
    mock_session.end_session.assert_called_once()

def test_transaction_ends_session_when_start_fails(transactional_db, mock_get_connection, mock_session):
    mock_session.start_transaction.side_effect = RuntimeError("replica set required")

    with pytest.raises(RuntimeError):
        with transactional_db.transaction():
            pass

    mock_session.commit_transaction.assert_not_called()
    mock_session.end_session.assert_called_once()

def test_transaction_disabled_yields_no_session(mock_get_connection):
    plain_db = Database("mongodb://localhost:27017", "workboard_unit", use_transactions=False)
    with plain_db.transaction() as session:
        assert session is None
    mock_get_connection.assert_not_called()

# === session writes ===
def test_save_document_with_session_replaces_by_id(mock_session):
    document = MagicMock()
    document.to_mongo.return_value = {"_id": "abc", "name": "To Do"}

    assert save_document(document, mock_session) is document

    document.validate.assert_called_once()
    document._get_collection.return_value.replace_one.assert_called_once_with(
        {"_id": "abc"}, {"_id": "abc", "name": "To Do"}, upsert=True, session=mock_session,
    )
    document.save.assert_not_called()
    assert document._created is False

def test_save_document_with_session_maps_duplicate_key(mock_session):
    document = MagicMock()
    document.to_mongo.return_value = {"_id": "abc"}
    document._get_collection.return_value.replace_one.side_effect = DuplicateKeyError("E11000 duplicate key")

    with pytest.raises(NotUniqueError):
        save_document(document, mock_session)

def test_save_document_without_session_uses_save():
    document = MagicMock()
    save_document(document)
    document.save.assert_called_once_with()
    document._get_collection.assert_not_called()

def test_delete_document_with_session(mock_session):
    document = MagicMock()
    document.to_mongo.return_value = {"_id": "abc"}
    delete_document(document, mock_session)
    document._get_collection.return_value.delete_one.assert_called_once_with({"_id": "abc"}, session=mock_session)
    document.delete.assert_not_called()

def test_update_matching_routes_raw_update(mock_session):
    queryset = MagicMock()
    queryset._query = {"workspace": "ws"}
    queryset._collection.update_many.return_value.modified_count = 2

    assert update_matching(queryset, {"$inc": {"position": -1}}, mock_session) == 2
    queryset._collection.update_many.assert_called_once_with({"workspace": "ws"}, {"$inc": {"position": -1}}, session=mock_session)

    update_matching(queryset, {"$inc": {"position": 1}})
    queryset.update.assert_called_once_with(__raw__={"$inc": {"position": 1}})

def test_delete_matching_routes_to_collection(mock_session):
    queryset = MagicMock()
    queryset._query = {"parent_task": "t1"}
    queryset._collection.delete_many.return_value.deleted_count = 3

    assert delete_matching(queryset, mock_session) == 3
    queryset._collection.delete_many.assert_called_once_with({"parent_task": "t1"}, session=mock_session)
    queryset.delete.assert_not_called()
