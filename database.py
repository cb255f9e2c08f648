"""
MongoDB access helpers

The database handle is created by the app lifespan (or injected by the
caller) and stored on ``app.state.db``; route handlers receive it through
the ``get_db`` dependency and pass it down explicitly.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Request
from pymongo import MongoClient
from pymongo.database import Database

from errors import NotFound

logger = logging.getLogger(__name__)


def connect(url: str, name: str) -> Tuple[MongoClient, Database]:
    client = MongoClient(url)
    logger.info("Connected to MongoDB database %s", name)
    return client, client[name]


def close(client: Optional[MongoClient]) -> None:
    if client is not None:
        client.close()
        logger.info("MongoDB connection closed")


def get_db(request: Request) -> Database:
    return request.app.state.db


def utcnow() -> datetime:
    # Stored timestamps are naive UTC, which is what pymongo hands back
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_object_id(value: str, message: str = "Not found") -> ObjectId:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise NotFound(message)


def create_document(db: Database, collection_name: str, data: Dict[str, Any]) -> str:
    now = utcnow()
    doc = dict(data)
    doc.setdefault("createdAt", now)
    doc["updatedAt"] = now
    result = db[collection_name].insert_one(doc)
    return str(result.inserted_id)


def get_documents(
    db: Database,
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    sort: Optional[List[Tuple[str, int]]] = None,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    cursor = db[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def serialize(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if doc is None:
        return doc
    d = dict(doc)
    d.pop("password", None)
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    for k, v in list(d.items()):
        if isinstance(v, ObjectId):
            d[k] = str(v)
        elif isinstance(v, datetime):
            d[k] = v.isoformat()
    return d
