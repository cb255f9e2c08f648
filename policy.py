"""
Role and ownership rules

Every permission decision in the API goes through ``is_allowed`` so the rules
for a given action live in one place.

Actions are ``"<resource>:<verb>"`` strings. Ownership-based actions need the
stored document; ``OWNER_FIELDS`` says which key holds its owner.
"""

from typing import Any, Dict, Optional

from errors import Forbidden
from schemas import Identity

ADMIN_ROLES = {"admin", "superadmin"}
AUTHOR_ROLES = {"teacher"} | ADMIN_ROLES

OWNER_FIELDS = {
    "news": "author",
    "event": "createdBy",
}


def is_admin(identity: Identity) -> bool:
    return identity.role in ADMIN_ROLES


def is_owner(identity: Identity, kind: str, resource: Optional[Dict[str, Any]]) -> bool:
    if not resource:
        return False
    owner = resource.get(OWNER_FIELDS[kind])
    return owner is not None and str(owner) == identity.id


def is_allowed(identity: Identity, action: str, resource: Optional[Dict[str, Any]] = None) -> bool:
    kind, _, verb = action.partition(":")

    if kind in OWNER_FIELDS:
        if verb == "create":
            return identity.role in AUTHOR_ROLES
        if verb in ("update", "delete"):
            return is_admin(identity) or is_owner(identity, kind, resource)
        if verb == "publish":
            return is_admin(identity)

    elif kind == "user" and verb in ("list", "create", "delete"):
        if not is_admin(identity):
            return False
        if verb == "delete" and resource is not None and resource.get("role") in ADMIN_ROLES:
            return identity.role == "superadmin"
        return True

    elif kind == "settings" and verb == "update":
        return is_admin(identity)

    raise ValueError(f"Unknown action: {action}")


def require(identity: Identity, action: str, resource: Optional[Dict[str, Any]] = None, message: Optional[str] = None) -> None:
    if not is_allowed(identity, action, resource):
        raise Forbidden(message)
