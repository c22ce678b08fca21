"""
The decision core. Every read or write against the document tree goes
through PolicyEvaluator.authorize(), which returns an Allow or Deny verdict
and never raises for a structural or store problem: those become Deny.

Decision table (first matching rule wins, everything else is denied):

    readonly      read/list: always         write: never
    users         read/list: always         write: uid == document id
    posts         read: public or own       create: authorId == uid, schema
                  list: filter guarantees   update/delete: owner or moderator
                        public or own
    rooms/*/posts as posts, and room moderators may also update/delete
    rooms         nothing
"""
import logging
from typing import Any, Dict, List, Optional, Union

from app.core import schema
from app.core.errors import InvalidPath, NoIdentity, NotFound, StoreUnavailable
from app.core.identity import Identity
from app.core.locator import CollectionKind, Locator, parse_path
from app.core.rbac import Action, Capability, granted_capability
from app.models.post import Visibility
from app.models.request import AuthorizationRequest, QueryFilter
from app.models.verdict import DenyReason, Verdict
from app.services.audit import log_decision
from app.services.resolver import RelationshipResolver

logger = logging.getLogger("rules.policy")


def query_is_constrained(filters: List[QueryFilter], identity: Identity) -> bool:
    """
    True when one equality clause alone guarantees that every possible result
    is readable: visibility == "public" or authorId == the caller.
    """
    for f in filters:
        if f.op != "==":
            continue
        if f.field == "visibility" and f.value == Visibility.PUBLIC.value:
            return True
        if f.field == "authorId" and identity.is_authenticated() and f.value == identity.uid:
            return True
    return False


class PolicyEvaluator:
    def __init__(self, resolver: RelationshipResolver):
        self.resolver = resolver
        self._handlers = {
            CollectionKind.READONLY: self._readonly,
            CollectionKind.USERS: self._users,
            CollectionKind.POSTS: self._posts,
            CollectionKind.ROOM_POSTS: self._posts,
            CollectionKind.ROOMS: self._rooms,
        }

    async def authorize(
        self,
        action: Union[Action, str],
        locator: Union[Locator, str],
        identity: Identity,
        data: Optional[Dict[str, Any]] = None,
        filters: Optional[List[QueryFilter]] = None,
    ) -> Verdict:
        path = str(locator)
        try:
            action = Action(action)
        except ValueError:
            verdict = Verdict.deny(DenyReason.UNSUPPORTED_OPERATION, f"Unknown operation {action!r}")
            log_decision(identity, str(action), path, verdict)
            return verdict

        try:
            if isinstance(locator, str):
                locator = parse_path(locator)
            path = locator.path
            if (action == Action.LIST) != locator.is_collection:
                raise InvalidPath(f"{action.value} is not valid on {path!r}")

            handler = self._handlers[locator.kind]
            verdict = await handler(action, locator, identity, data, filters or [])

        except InvalidPath as e:
            verdict = Verdict.deny(DenyReason.INVALID_PATH, str(e))
        except NoIdentity as e:
            verdict = Verdict.deny(DenyReason.UNAUTHENTICATED, str(e))
        except NotFound as e:
            verdict = Verdict.deny(DenyReason.NOT_FOUND, str(e))
        except StoreUnavailable as e:
            # Availability problem, not a security decision
            logger.warning(f"Degraded: denying {action.value} {path} because the store is unavailable: {e}")
            verdict = Verdict.deny(DenyReason.STORE_UNAVAILABLE, str(e))

        log_decision(identity, action.value, path, verdict)
        return verdict

    async def authorize_request(self, request: AuthorizationRequest, identity: Identity) -> Verdict:
        return await self.authorize(
            request.operation,
            request.path,
            identity,
            data=request.data,
            filters=request.filters,
        )

    # --- Collection rules ---

    async def _readonly(self, action, locator, identity, data, filters) -> Verdict:
        if action.is_write:
            return Verdict.deny(DenyReason.READ_ONLY_COLLECTION, "readonly documents cannot be written")
        return Verdict.allow()

    async def _users(self, action, locator, identity, data, filters) -> Verdict:
        if not action.is_write:
            return Verdict.allow()

        uid = identity.require_uid()
        if uid != locator.document_id:
            return Verdict.deny(DenyReason.NOT_OWNER, f"{uid} cannot write users/{locator.document_id}")
        return schema.validate(locator.kind, action, data)

    async def _rooms(self, action, locator, identity, data, filters) -> Verdict:
        return Verdict.deny(DenyReason.NO_MATCHING_RULE, "No rule grants access to rooms")

    async def _posts(self, action, locator, identity, data, filters) -> Verdict:
        if action == Action.LIST:
            if query_is_constrained(filters, identity):
                return Verdict.allow()
            return Verdict.deny(
                DenyReason.UNCONSTRAINED_QUERY,
                "Query must filter on visibility == 'public' or authorId == your uid",
            )

        if action == Action.READ:
            return await self._read_post(locator, identity)

        if action == Action.CREATE:
            return self._create_post(locator, identity, data or {})

        return await self._modify_post(action, locator, identity, data or {})

    async def _read_post(self, locator, identity) -> Verdict:
        context = await self.resolver.resolve_context(locator)
        post = context.existing

        if post.get("visibility") == Visibility.PUBLIC.value:
            return Verdict.allow()
        if not identity.is_authenticated():
            return Verdict.deny(DenyReason.UNAUTHENTICATED, "Private posts need a signed-in author")
        if post.get("authorId") == identity.uid:
            return Verdict.allow()
        return Verdict.deny(DenyReason.NOT_OWNER, "Private post belongs to another user")

    def _create_post(self, locator, identity, data) -> Verdict:
        uid = identity.require_uid()
        # Checked against the proposed document so nobody can post as someone else
        if data.get("authorId") != uid:
            return Verdict.deny(DenyReason.NOT_OWNER, "authorId must match the signed-in user")
        return schema.validate(locator.kind, Action.CREATE, data)

    async def _modify_post(self, action, locator, identity, data) -> Verdict:
        identity.require_uid()
        context = await self.resolver.resolve_context(
            locator,
            need_room=(locator.kind == CollectionKind.ROOM_POSTS),
        )

        capability = granted_capability(locator.kind, identity, context.existing, context.parent_room)
        if capability is None:
            if locator.kind == CollectionKind.ROOM_POSTS:
                return Verdict.deny(DenyReason.NOT_MODERATOR, "Not the author nor a moderator of this room")
            return Verdict.deny(DenyReason.NOT_OWNER, "Not the author and not a moderator")
        if capability != Capability.OWNER:
            logger.debug(f"{identity.uid} acts on {locator.path} as {capability.value}")

        if action == Action.DELETE:
            return Verdict.allow()

        # Shape is checked on the document as it will look after the write
        proposed = {**context.existing, **data}
        return schema.validate(locator.kind, Action.UPDATE, proposed)
