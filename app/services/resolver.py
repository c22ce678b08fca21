import asyncio
import logging
from typing import Any, Dict, Optional, Protocol
from pydantic import BaseModel, ConfigDict, ValidationError

from app.core.config import FETCH_TIMEOUT_SECONDS
from app.core.errors import NotFound, StoreUnavailable
from app.core.locator import CollectionKind, Locator
from app.models.post import RoomDocument

logger = logging.getLogger("rules.resolver")


class DocumentStore(Protocol):
    """Anything that can hand back a document snapshot by locator."""

    async def get(self, locator: Locator) -> Optional[Dict[str, Any]]: ...


class ResolvedContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    existing: Optional[Dict[str, Any]] = None
    parent_room: Optional[RoomDocument] = None


class RelationshipResolver:
    """
    Fetches the documents a decision depends on: the target document itself
    and, for posts nested in a room, the enclosing room.
    """

    def __init__(self, store: DocumentStore, timeout: float = FETCH_TIMEOUT_SECONDS):
        self.store = store
        self.timeout = timeout

    async def _fetch_room(self, locator: Locator) -> Optional[RoomDocument]:
        room_locator = locator.parent
        raw = await self.store.get(room_locator)
        if raw is None:
            return None
        try:
            return RoomDocument.model_validate(raw)
        except ValidationError as e:
            # A malformed room grants nobody anything
            logger.warning(f"Ignoring malformed room {room_locator.path}: {e}")
            return None

    async def _nothing(self):
        return None

    async def resolve_context(
        self,
        locator: Locator,
        need_room: bool = False,
    ) -> ResolvedContext:
        """
        Runs the needed lookups concurrently under one deadline.
        Raises NotFound when the target document is absent and
        StoreUnavailable when the store errors out or is too slow.
        """
        fetch_room = need_room and locator.kind == CollectionKind.ROOM_POSTS

        try:
            existing, room = await asyncio.wait_for(
                asyncio.gather(
                    self.store.get(locator),
                    self._fetch_room(locator) if fetch_room else self._nothing(),
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.warning(f"Context lookup for {locator.path} timed out after {self.timeout}s")
            raise StoreUnavailable(f"Timed out resolving {locator.path}") from e
        except StoreUnavailable:
            logger.warning(f"Context lookup for {locator.path} failed: store unavailable")
            raise
        except Exception as e:
            logger.warning(f"Context lookup for {locator.path} failed: {e}")
            raise StoreUnavailable(str(e)) from e

        if existing is None:
            raise NotFound(locator.path)

        return ResolvedContext(existing=existing, parent_room=room)
