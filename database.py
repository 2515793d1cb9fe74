"""
Database helpers

Thin wrappers around a pymongo Database. The handle itself is created once at
startup and carried on the application context; every helper takes it
explicitly.

Collections:
- "product", "user", "order"
- "counters": one document per atomic sequence, {_id: name, seq: int}
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument
from pymongo.database import Database

logger = logging.getLogger(__name__)

# collection -> numeric id field fed by a counter of the same name
SEQUENCES = {"product": "id", "order": "orderId"}


def get_database(database_url: str, database_name: str) -> Database:
    client = MongoClient(database_url, serverSelectionTimeoutMS=5000)
    return client[database_name]


def ensure_indexes(db: Database) -> None:
    db["user"].create_index([("email", ASCENDING)], unique=True)
    db["product"].create_index([("id", ASCENDING)], unique=True)
    db["order"].create_index([("orderId", ASCENDING)], unique=True)


def seed_counters(db: Database) -> None:
    """Start each counter at the highest id already stored, so ids created
    before counters existed are never handed out again."""
    for collection, field in SEQUENCES.items():
        top = db[collection].find_one({field: {"$exists": True}}, sort=[(field, DESCENDING)])
        current = int(top[field]) if top else 0
        db["counters"].update_one({"_id": collection}, {"$max": {"seq": current}}, upsert=True)
        logger.info("Counter %s starts after %d", collection, current)


def next_sequence(db: Database, name: str) -> int:
    doc = db["counters"].find_one_and_update(
        {"_id": name},
        {"$inc": {"seq": 1}},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    return int(doc["seq"])


def create_document(db: Database, collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    if isinstance(data, BaseModel):
        data = data.model_dump()
    else:
        data = dict(data)
    result = db[collection_name].insert_one(data)
    return str(result.inserted_id)


def get_documents(db: Database, collection_name: str, filter_dict: Optional[dict] = None,
                  limit: Optional[int] = None) -> List[dict]:
    cursor = db[collection_name].find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def serialize_doc(doc: Optional[dict], keep_id: bool = False) -> Optional[dict]:
    """Make a stored record JSON friendly.

    Records with their own numeric id drop Mongo's `_id`; others expose it as
    a string. Datetimes become ISO-8601 strings, nested dicts included.
    """
    if doc is None:
        return None
    out = {}
    for key, value in doc.items():
        if key == "_id":
            if keep_id:
                out["_id"] = str(value)
            continue
        out[key] = _jsonable(value)
    return out


def _jsonable(value):
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    return value
