"""
MongoDB access helpers.

`db` is None when DATABASE_URL / DATABASE_NAME are not configured; every helper
then raises DatabaseUnavailable.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import MongoClient

from settings import get_settings

logger = logging.getLogger(__name__)


class DatabaseUnavailable(RuntimeError):
    pass


_settings = get_settings().database

client = None
db = None
if _settings.url and _settings.name:
    client = MongoClient(_settings.url)
    db = client[_settings.name]
else:
    logger.warning("DATABASE_URL / DATABASE_NAME not set, running without a database")


def _database():
    # read the module global at call time so it can be swapped out
    if db is None:
        raise DatabaseUnavailable("Database not available. Check DATABASE_URL and DATABASE_NAME.")
    return db


def to_object_id(_id: str) -> Optional[ObjectId]:
    try:
        return ObjectId(_id)
    except (InvalidId, TypeError):
        return None


def insert_document(collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> Dict[str, Any]:
    """Insert a document with created_at/updated_at stamps and return it as stored."""
    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = dict(data)

    now = datetime.now(timezone.utc)
    data_dict["created_at"] = now
    data_dict["updated_at"] = now

    result = _database()[collection_name].insert_one(data_dict)
    data_dict["_id"] = result.inserted_id
    return data_dict


def create_document(collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    return str(insert_document(collection_name, data)["_id"])


def get_documents(
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    sort: Optional[List[Tuple[str, int]]] = None,
    limit: Optional[int] = None,
    projection: Optional[Dict[str, Any]] = None,
) -> List[Dict[str, Any]]:
    cursor = _database()[collection_name].find(filter_dict or {}, projection)
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def find_document(collection_name: str, filter_dict: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return _database()[collection_name].find_one(filter_dict)


def update_document(
    collection_name: str,
    _id: ObjectId,
    changes: Dict[str, Any],
    conditions: Optional[Dict[str, Any]] = None,
) -> bool:
    """Set fields on one document. With conditions, only updates if they still hold."""
    changes = dict(changes)
    changes["updated_at"] = datetime.now(timezone.utc)
    filter_dict = {"_id": _id, **(conditions or {})}
    res = _database()[collection_name].update_one(filter_dict, {"$set": changes})
    return res.modified_count > 0
