import re
from enum import Enum
from typing import Optional, Tuple
from pydantic import BaseModel, ConfigDict

from app.core.errors import InvalidPath


class CollectionKind(str, Enum):
    READONLY = "readonly"
    USERS = "users"
    POSTS = "posts"
    ROOMS = "rooms"
    ROOM_POSTS = "room_posts"


# Collection name -> kind, for collections that live at the root
TOP_LEVEL = {
    "readonly": CollectionKind.READONLY,
    "users": CollectionKind.USERS,
    "posts": CollectionKind.POSTS,
    "rooms": CollectionKind.ROOMS,
}

# (parent kind, collection name) -> kind, for collections nested one level down
NESTED = {
    (CollectionKind.ROOMS, "posts"): CollectionKind.ROOM_POSTS,
}

_RESERVED_ID = re.compile(r"^__.*__$")


class Segment(BaseModel):
    model_config = ConfigDict(frozen=True)

    collection: str
    kind: CollectionKind
    document_id: Optional[str] = None


class Locator(BaseModel):
    """
    A typed Firestore path. The last segment has no document_id when the
    locator points at a collection (as list queries do).
    """
    model_config = ConfigDict(frozen=True)

    segments: Tuple[Segment, ...]

    @property
    def kind(self) -> CollectionKind:
        return self.segments[-1].kind

    @property
    def document_id(self) -> Optional[str]:
        return self.segments[-1].document_id

    @property
    def is_collection(self) -> bool:
        return self.segments[-1].document_id is None

    @property
    def parent(self) -> Optional["Locator"]:
        """The enclosing document, e.g. the room of a nested post."""
        if len(self.segments) < 2:
            return None
        return Locator(segments=self.segments[:-1])

    @property
    def path(self) -> str:
        parts = []
        for seg in self.segments:
            parts.append(seg.collection)
            if seg.document_id is not None:
                parts.append(seg.document_id)
        return "/".join(parts)

    def __str__(self) -> str:
        return self.path


def _check_document_id(doc_id: str, path: str):
    if not doc_id or doc_id in (".", "..") or _RESERVED_ID.match(doc_id):
        raise InvalidPath(f"Invalid document id {doc_id!r} in {path!r}")


def parse_path(path: str) -> Locator:
    """
    Parses 'users/abc', 'rooms/r1/posts/p1' or a collection path such as
    'posts' / 'rooms/r1/posts' into a Locator.
    """
    parts = path.strip("/").split("/") if path else []
    if not parts or parts == [""]:
        raise InvalidPath("Empty path")
    if len(parts) > 4:
        raise InvalidPath(f"Path nests deeper than rooms/{{id}}/posts/{{id}}: {path!r}")

    segments = []
    for i in range(0, len(parts), 2):
        name = parts[i]
        doc_id = parts[i + 1] if i + 1 < len(parts) else None

        if not segments:
            kind = TOP_LEVEL.get(name)
        else:
            parent = segments[-1]
            kind = NESTED.get((parent.kind, name))
        if kind is None:
            raise InvalidPath(f"Unknown collection {name!r} in {path!r}")
        if doc_id is not None:
            _check_document_id(doc_id, path)

        segments.append(Segment(collection=name, kind=kind, document_id=doc_id))

    return Locator(segments=tuple(segments))


def document(path: str) -> Locator:
    locator = parse_path(path)
    if locator.is_collection:
        raise InvalidPath(f"Expected a document path, got collection {path!r}")
    return locator
