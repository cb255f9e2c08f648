"""
User accounts: registration, login and admin management

Self-registration accepts any role, admin and superadmin included, the same
as the site this API replaces. Restricting it changes the public contract of
``POST /api/register``.
"""

import logging
from typing import Any, Dict, List

from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

import config
import policy
from database import create_document, get_documents, serialize, to_object_id, utcnow
from errors import DuplicateEmail, InvalidCredentials, InvalidOperation, NotFound
from schemas import Identity, RegisterRequest, User, UserCreate
from security import create_access_token, get_password_hash, verify_password

logger = logging.getLogger(__name__)

COLLECTION = "user"
PUBLIC_FIELDS = ("id", "name", "email", "role", "department", "mustChangePassword")


def normalize_email(email: str) -> str:
    return str(email).strip().lower()


def public_profile(user: Dict[str, Any]) -> Dict[str, Any]:
    data = serialize(user)
    return {k: data.get(k) for k in PUBLIC_FIELDS}


def find_by_email(db: Database, email: str):
    return db[COLLECTION].find_one({"email": normalize_email(email)})


def ensure_indexes(db: Database) -> None:
    # Backs the email check in _insert_user against concurrent inserts
    db[COLLECTION].create_index("email", unique=True)


def _insert_user(db: Database, user: User) -> Dict[str, Any]:
    if find_by_email(db, user.email):
        raise DuplicateEmail("User already exists")
    doc = user.model_dump()
    doc["email"] = normalize_email(doc["email"])
    try:
        user_id = create_document(db, COLLECTION, doc)
    except DuplicateKeyError:
        raise DuplicateEmail("User already exists")
    return db[COLLECTION].find_one({"_id": to_object_id(user_id)})


def register(db: Database, body: RegisterRequest) -> str:
    user = _insert_user(db, User(
        name=body.name,
        email=body.email,
        password=get_password_hash(body.password),
        role=body.role,
    ))
    logger.info("Registered %s user %s", user["role"], user["email"])
    return create_access_token(str(user["_id"]), user["role"])


def login(db: Database, email: str, password: str) -> Dict[str, Any]:
    user = find_by_email(db, email)
    # Same error for unknown email and wrong password
    if not user or not verify_password(password, user.get("password", "")):
        logger.warning("Failed login for %s", normalize_email(email))
        raise InvalidCredentials("Invalid credentials")
    token = create_access_token(str(user["_id"]), user["role"])
    return {"token": token, "user": public_profile(user)}


def get_profile(db: Database, identity: Identity) -> Dict[str, Any]:
    user = db[COLLECTION].find_one({"_id": to_object_id(identity.id, "User not found")})
    if not user:
        raise NotFound("User not found")
    return public_profile(user)


def change_password(db: Database, identity: Identity, current_password: str, new_password: str) -> Dict[str, str]:
    user_id = to_object_id(identity.id, "User not found")
    user = db[COLLECTION].find_one({"_id": user_id})
    if not user:
        raise NotFound("User not found")
    if not verify_password(current_password, user.get("password", "")):
        raise InvalidOperation("Current password is incorrect")
    db[COLLECTION].update_one(
        {"_id": user_id},
        {"$set": {"password": get_password_hash(new_password), "mustChangePassword": False, "updatedAt": utcnow()}},
    )
    logger.info("Password changed for user %s", identity.id)
    return {"message": "Password updated"}


def list_users(db: Database, identity: Identity) -> List[Dict[str, Any]]:
    policy.require(identity, "user:list")
    return [serialize(u) for u in get_documents(db, COLLECTION, sort=[("createdAt", -1)])]


def create_user(db: Database, identity: Identity, body: UserCreate) -> Dict[str, Any]:
    """Create an account on someone's behalf.

    The account gets DEFAULT_USER_PASSWORD and is flagged with
    mustChangePassword until its owner sets their own.
    """
    policy.require(identity, "user:create")
    user = _insert_user(db, User(
        name=body.name,
        email=body.email,
        password=get_password_hash(config.DEFAULT_USER_PASSWORD),
        role=body.role,
        department=body.department,
        mustChangePassword=True,
    ))
    logger.info("User %s created %s account %s", identity.id, user["role"], user["email"])
    return serialize(user)


def delete_user(db: Database, identity: Identity, user_id: str) -> Dict[str, str]:
    policy.require(identity, "user:delete")
    target_id = to_object_id(user_id, "User not found")
    # Compare parsed ids, the path may spell the hex in any case
    if target_id == to_object_id(identity.id):
        raise InvalidOperation("Cannot delete your own account")

    target = db[COLLECTION].find_one({"_id": target_id})
    if not target:
        raise NotFound("User not found")
    policy.require(identity, "user:delete", target, message="Cannot delete another admin")

    result = db[COLLECTION].delete_one({"_id": target_id})
    if result.deleted_count == 0:
        raise NotFound("User not found")
    logger.info("User %s deleted user %s", identity.id, user_id)
    return {"message": "User removed"}
