import logging
from typing import Any, Dict, List

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.database import Database

import policy
from database import create_document, get_documents, serialize, to_object_id, utcnow
from errors import NotFound
from schemas import Event, EventCreate, EventUpdate, Identity, changed_fields

logger = logging.getLogger(__name__)

COLLECTION = "event"


def list_events(db: Database) -> List[Dict[str, Any]]:
    return [serialize(e) for e in get_documents(db, COLLECTION, sort=[("date", 1)])]


def _get_event(db: Database, event_id: str) -> Dict[str, Any]:
    event = db[COLLECTION].find_one({"_id": to_object_id(event_id, "Event not found")})
    if not event:
        raise NotFound("Event not found")
    return event


def create_event(db: Database, identity: Identity, body: EventCreate) -> Dict[str, Any]:
    policy.require(identity, "event:create", message="Not authorized to create events")
    doc = Event(**body.model_dump(), createdBy=identity.id).model_dump()
    doc["createdBy"] = ObjectId(identity.id)
    event_id = create_document(db, COLLECTION, doc)
    logger.info("User %s created event %s", identity.id, event_id)
    return serialize(db[COLLECTION].find_one({"_id": ObjectId(event_id)}))


def update_event(db: Database, identity: Identity, event_id: str, body: EventUpdate) -> Dict[str, Any]:
    event = _get_event(db, event_id)
    policy.require(identity, "event:update", event, message="Not authorized to update this event")
    changes = changed_fields(body)
    changes["updatedAt"] = utcnow()
    updated = db[COLLECTION].find_one_and_update(
        {"_id": event["_id"]},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        raise NotFound("Event not found")
    logger.info("User %s updated event %s", identity.id, event_id)
    return serialize(updated)


def delete_event(db: Database, identity: Identity, event_id: str) -> Dict[str, str]:
    event = _get_event(db, event_id)
    policy.require(identity, "event:delete", event, message="Not authorized to delete this event")
    # Of two racing deletes only one sees deleted_count == 1
    result = db[COLLECTION].delete_one({"_id": event["_id"]})
    if result.deleted_count == 0:
        raise NotFound("Event not found")
    logger.info("User %s deleted event %s", identity.id, event_id)
    return {"message": "Event removed"}
