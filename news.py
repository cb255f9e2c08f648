"""
News articles

Teachers and admins write articles; only admins publish them. Articles by
admins are published on creation, the rest wait for an admin to flip
``isPublished``.
"""

import logging
from typing import Any, Dict, List

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.database import Database

import policy
from database import create_document, get_documents, serialize, to_object_id, utcnow
from errors import NotFound
from schemas import Identity, News, NewsCreate, NewsUpdate, changed_fields

logger = logging.getLogger(__name__)

COLLECTION = "news"


def list_published(db: Database) -> List[Dict[str, Any]]:
    articles = get_documents(db, COLLECTION, {"isPublished": True}, sort=[("publishedAt", -1)])

    author_ids = list({a["author"] for a in articles if a.get("author")})
    names = {}
    if author_ids:
        for u in db["user"].find({"_id": {"$in": author_ids}}, {"name": 1}):
            names[u["_id"]] = u.get("name")

    result = []
    for article in articles:
        item = serialize(article)
        author_id = article.get("author")
        item["author"] = {"id": str(author_id), "name": names.get(author_id)} if author_id else None
        result.append(item)
    return result


def _get_article(db: Database, article_id: str) -> Dict[str, Any]:
    article = db[COLLECTION].find_one({"_id": to_object_id(article_id, "Article not found")})
    if not article:
        raise NotFound("Article not found")
    return article


def create_article(db: Database, identity: Identity, body: NewsCreate) -> Dict[str, Any]:
    policy.require(identity, "news:create", message="Not authorized to create news")
    published = policy.is_allowed(identity, "news:publish")
    doc = News(
        **body.model_dump(),
        author=identity.id,
        isPublished=published,
        publishedAt=utcnow(),
    ).model_dump()
    doc["author"] = ObjectId(identity.id)
    article_id = create_document(db, COLLECTION, doc)
    logger.info("User %s created article %s (published=%s)", identity.id, article_id, published)
    return serialize(db[COLLECTION].find_one({"_id": ObjectId(article_id)}))


def update_article(db: Database, identity: Identity, article_id: str, body: NewsUpdate) -> Dict[str, Any]:
    article = _get_article(db, article_id)
    policy.require(identity, "news:update", article, message="Not authorized to update this article")

    changes = changed_fields(body)
    publish = changes.pop("isPublished", None)
    if publish is not None and policy.is_allowed(identity, "news:publish"):
        changes["isPublished"] = publish
        if publish and not article.get("isPublished"):
            changes["publishedAt"] = utcnow()
    changes["updatedAt"] = utcnow()

    # Not transactional: a concurrent delete after the ownership check
    # surfaces here as a missing document.
    updated = db[COLLECTION].find_one_and_update(
        {"_id": article["_id"]},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        raise NotFound("Article not found")
    logger.info("User %s updated article %s", identity.id, article_id)
    return serialize(updated)


def delete_article(db: Database, identity: Identity, article_id: str) -> Dict[str, str]:
    article = _get_article(db, article_id)
    policy.require(identity, "news:delete", article, message="Not authorized to delete this article")
    result = db[COLLECTION].delete_one({"_id": article["_id"]})
    if result.deleted_count == 0:
        raise NotFound("Article not found")
    logger.info("User %s deleted article %s", identity.id, article_id)
    return {"message": "Article removed"}
