from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional

from app.core.identity import Identity, MODERATOR_CLAIM
from app.core.locator import CollectionKind
from app.models.post import RoomDocument

# --- 1. Define the Operations ---
class Action(str, Enum):
    CREATE = "create"
    READ = "read"         # single-document get
    UPDATE = "update"
    DELETE = "delete"
    LIST = "list"         # collection query

    @property
    def is_write(self) -> bool:
        return self in (Action.CREATE, Action.UPDATE, Action.DELETE)


# --- 2. Define the Capabilities (who besides the owner may act) ---
class Capability(str, Enum):
    OWNER = "owner"                     # uid matches the document's authorId
    MODERATOR = "moderator"             # global isModerator claim
    ROOM_MODERATOR = "room_moderator"   # uid listed in the parent room's roomMods


def is_owner(identity: Identity, document: Optional[Mapping[str, Any]], room: Optional[RoomDocument] = None) -> bool:
    if not identity.is_authenticated() or not document:
        return False
    return document.get("authorId") == identity.uid


def is_moderator(identity: Identity, document: Optional[Mapping[str, Any]] = None, room: Optional[RoomDocument] = None) -> bool:
    return identity.is_authenticated() and identity.has_claim(MODERATOR_CLAIM)


def is_room_moderator(identity: Identity, document: Optional[Mapping[str, Any]] = None, room: Optional[RoomDocument] = None) -> bool:
    if not identity.is_authenticated() or room is None:
        return False
    return identity.uid in room.roomMods


CAPABILITY_CHECKS: Dict[Capability, Callable[..., bool]] = {
    Capability.OWNER: is_owner,
    Capability.MODERATOR: is_moderator,
    Capability.ROOM_MODERATOR: is_room_moderator,
}

# --- 3. The "Constitution" (collection -> capabilities that may modify an existing post) ---
# Order matters only for logging: the first capability that matches is reported.
WRITE_POLICY: Dict[CollectionKind, List[Capability]] = {

    # Top-level posts: the author, or anyone holding the moderator claim
    CollectionKind.POSTS: [
        Capability.OWNER,
        Capability.MODERATOR,
    ],

    # Posts inside a room: additionally the room's own moderators
    CollectionKind.ROOM_POSTS: [
        Capability.OWNER,
        Capability.MODERATOR,
        Capability.ROOM_MODERATOR,
    ],
}


def granted_capability(
    kind: CollectionKind,
    identity: Identity,
    document: Optional[Mapping[str, Any]],
    room: Optional[RoomDocument] = None,
) -> Optional[Capability]:
    """Returns the first capability that lets `identity` modify `document`, or None."""
    # Default to empty list if the collection has no write policy
    for capability in WRITE_POLICY.get(kind, []):
        if CAPABILITY_CHECKS[capability](identity, document, room):
            return capability
    return None

