"""
School settings singleton

The ``setting`` collection holds one document. It is created with default
values at startup if missing and afterwards only ever upserted.
"""

import logging
from typing import Any, Dict

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.database import Database

import policy
from database import create_document, serialize, utcnow
from errors import NotFound
from schemas import Identity, Setting, SettingsUpdate, changed_fields

logger = logging.getLogger(__name__)

COLLECTION = "setting"


def ensure_initialized(db: Database) -> bool:
    """Insert the default settings document if there is none yet.

    Returns True when a document was created.
    """
    if db[COLLECTION].count_documents({}) > 0:
        return False
    create_document(db, COLLECTION, Setting().model_dump())
    logger.info("Default settings created")
    return True


def get_settings(db: Database) -> Dict[str, Any]:
    settings = db[COLLECTION].find_one({}, sort=[("updatedAt", -1)])
    if not settings:
        raise NotFound("Settings not found")
    return serialize(settings)


def update_settings(db: Database, identity: Identity, body: SettingsUpdate) -> Dict[str, Any]:
    policy.require(identity, "settings:update")
    now = utcnow()
    changes = changed_fields(body)
    changes["updatedBy"] = ObjectId(identity.id)
    changes["updatedAt"] = now

    defaults = Setting().model_dump()
    on_insert = {k: v for k, v in defaults.items() if k not in changes}
    on_insert["createdAt"] = now

    settings = db[COLLECTION].find_one_and_update(
        {},
        {"$set": changes, "$setOnInsert": on_insert},
        sort=[("updatedAt", -1)],
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    logger.info("User %s updated settings: %s", identity.id, ", ".join(sorted(changes)))
    return serialize(settings)
