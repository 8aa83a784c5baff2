"""
MongoDB access for the bootcamp directory.

The client is created lazily from DATABASE_URL / DATABASE_NAME. Route handlers
receive the database through the ``get_db`` dependency so tests can swap in
another database object.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from bson import ObjectId
from fastapi import HTTPException
from pymongo import ASCENDING, GEOSPHERE, MongoClient
from pymongo.database import Database

import config

logger = logging.getLogger(__name__)

client: Optional[MongoClient] = None
db: Optional[Database] = None

if config.DATABASE_URL and config.DATABASE_NAME:
    client = MongoClient(config.DATABASE_URL, serverSelectionTimeoutMS=5000)
    db = client[config.DATABASE_NAME]


def get_db() -> Database:
    if db is None:
        raise HTTPException(status_code=500, detail="Database not available")
    return db


def ensure_indexes(database: Database) -> None:
    database["bootcamp"].create_index([("name", ASCENDING)], unique=True)
    database["bootcamp"].create_index([("location", GEOSPHERE)])
    database["course"].create_index([("bootcamp", ASCENDING)])
    database["review"].create_index(
        [("bootcamp", ASCENDING), ("user", ASCENDING)],
        unique=True,
        partialFilterExpression={"deleted": False},
    )
    database["user"].create_index([("email", ASCENDING)], unique=True)


def now() -> datetime:
    return datetime.now(timezone.utc)


def to_obj_id(id_str: str) -> ObjectId:
    try:
        return ObjectId(id_str)
    except Exception:
        raise HTTPException(status_code=400, detail=f"{id_str} is not a valid id")


def sanitize(doc: Optional[Dict]) -> Optional[Dict]:
    """Render a stored document for output: ``_id`` becomes ``id``, password is dropped."""
    if not doc:
        return doc
    d = {**doc}
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    d.pop("password", None)
    return d


def create_document(database: Database, collection: str, data: Dict[str, Any]) -> Dict:
    stamp = now()
    doc = {**data, "createdAt": stamp, "updatedAt": stamp}
    res = database[collection].insert_one(doc)
    doc["_id"] = res.inserted_id
    return doc


def find_live(database: Database, collection: str, id_str: str) -> Optional[Dict]:
    return database[collection].find_one({"_id": to_obj_id(id_str), "deleted": {"$ne": True}})
