from unittest.mock import MagicMock, patch

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient


def _matches(doc, filter_dict):
    return all(doc.get(k) == v for k, v in filter_dict.items())


def mock_collection(docs):
    """MagicMock collection whose find_one/insert_one work against a list of dicts."""
    collection = MagicMock()

    def find_one(filter_dict):
        return next((d for d in docs if _matches(d, filter_dict)), None)

    def insert_one(data):
        data = dict(data)
        data["_id"] = ObjectId()
        docs.append(data)
        return MagicMock(inserted_id=data["_id"])

    collection.find_one.side_effect = find_one
    collection.insert_one.side_effect = insert_one
    collection.update_one.return_value = MagicMock(modified_count=1)
    return collection


@pytest.fixture
def rider_doc():
    return {"_id": ObjectId(), "name": "Asha", "email": "asha@example.com", "api_key": "rider-key"}


@pytest.fixture
def driver_doc():
    return {
        "_id": ObjectId(),
        "name": "Ravi",
        "email": "ravi@example.com",
        "is_approved": True,
        "driver_code": "BLR-7",
        "api_key": "driver-key",
    }


@pytest.fixture
def store(rider_doc, driver_doc):
    return {"rider": [rider_doc], "driver": [driver_doc], "booking": []}


@pytest.fixture
def collections(store):
    return {name: mock_collection(docs) for name, docs in store.items()}


@pytest.fixture
def mock_db(collections):
    db = MagicMock()
    db.__getitem__.side_effect = collections.__getitem__
    return db


@pytest.fixture
def test_client(mock_db):
    with patch("database.db", mock_db):
        from main import app

        yield TestClient(app)


@pytest.fixture
def rider_headers():
    return {"X-API-Key": "rider-key"}


@pytest.fixture
def driver_headers():
    return {"X-API-Key": "driver-key"}
