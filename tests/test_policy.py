import pytest

from app.core.identity import Identity
from app.core.rbac import Action
from app.models.request import AuthorizationRequest, QueryFilter
from app.models.verdict import DenyReason
from app.services.policy import PolicyEvaluator
from app.services.resolver import RelationshipResolver

from conftest import MY_ID, THEIR_ID, ROOM_MOD_ID, full_post

pytestmark = pytest.mark.asyncio


def where(field, value, op="=="):
    return [QueryFilter(field=field, op=op, value=value)]


@pytest.fixture
def rooms(store):
    store.set("rooms/room_abc", {"topic": "General", "roomMods": [ROOM_MOD_ID]})
    store.set("posts/post_123", full_post(THEIR_ID))
    store.set("rooms/room_abc/posts/post_123", full_post(THEIR_ID))
    return store


# --- readonly ---

async def test_can_read_items_in_readonly_collection(evaluator, nobody, me, moderator):
    for identity in (nobody, me, moderator):
        assert (await evaluator.authorize(Action.READ, "readonly/testDoc", identity)).allowed
        assert (await evaluator.authorize(Action.LIST, "readonly", identity)).allowed


async def test_cant_write_to_readonly_collection(evaluator, nobody, me, moderator):
    for identity in (nobody, me, moderator):
        verdict = await evaluator.authorize(Action.CREATE, "readonly/testDoc2", identity, {"foo": "bar"})
        assert not verdict.allowed
        assert verdict.reason == DenyReason.READ_ONLY_COLLECTION


# --- users ---

async def test_can_write_to_own_user_document(evaluator, me):
    assert (await evaluator.authorize(Action.CREATE, f"users/{MY_ID}", me, {"foo": "bar"})).allowed
    assert (await evaluator.authorize(Action.UPDATE, f"users/{MY_ID}", me, {"foo": "bar"})).allowed


async def test_cant_write_to_another_user_document(evaluator, me, moderator):
    verdict = await evaluator.authorize(Action.CREATE, f"users/{THEIR_ID}", me, {"foo": "bar"})
    assert verdict.reason == DenyReason.NOT_OWNER
    # Moderation does not extend to profiles
    assert not (await evaluator.authorize(Action.UPDATE, f"users/{THEIR_ID}", moderator, {"foo": "bar"})).allowed


async def test_anonymous_cant_write_users(evaluator, nobody):
    verdict = await evaluator.authorize(Action.CREATE, f"users/{MY_ID}", nobody, {"foo": "bar"})
    assert verdict.reason == DenyReason.UNAUTHENTICATED


async def test_users_are_readable_by_anyone(evaluator, nobody):
    assert (await evaluator.authorize(Action.READ, f"users/{THEIR_ID}", nobody)).allowed
    assert (await evaluator.authorize(Action.LIST, "users", nobody)).allowed


# --- post queries ---

async def test_can_query_public_posts(evaluator, nobody):
    assert (await evaluator.authorize(Action.LIST, "posts", nobody, filters=where("visibility", "public"))).allowed


async def test_can_query_personal_posts(evaluator, me):
    assert (await evaluator.authorize(Action.LIST, "posts", me, filters=where("authorId", MY_ID))).allowed


async def test_cant_query_all_posts(evaluator, me, moderator):
    for identity in (me, moderator):
        verdict = await evaluator.authorize(Action.LIST, "posts", identity)
        assert verdict.reason == DenyReason.UNCONSTRAINED_QUERY


async def test_cant_query_someone_elses_posts(evaluator, me, nobody):
    assert not (await evaluator.authorize(Action.LIST, "posts", me, filters=where("authorId", THEIR_ID))).allowed
    assert not (await evaluator.authorize(Action.LIST, "posts", nobody, filters=where("authorId", MY_ID))).allowed


async def test_query_needs_equality(evaluator, me):
    filters = where("visibility", "public", op="!=")
    assert not (await evaluator.authorize(Action.LIST, "posts", me, filters=filters)).allowed
    filters = where("visibility", "private")
    assert not (await evaluator.authorize(Action.LIST, "posts", me, filters=filters)).allowed


async def test_compound_query_with_one_sufficient_clause(evaluator, me):
    filters = [
        QueryFilter(field="visibility", value="public"),
        QueryFilter(field="authorId", value=THEIR_ID),
    ]
    assert (await evaluator.authorize(Action.LIST, "posts", me, filters=filters)).allowed


async def test_room_post_queries_follow_post_rule(evaluator, nobody):
    path = "rooms/room_abc/posts"
    assert (await evaluator.authorize(Action.LIST, path, nobody, filters=where("visibility", "public"))).allowed
    assert not (await evaluator.authorize(Action.LIST, path, nobody)).allowed


# --- single post reads ---

async def test_can_read_single_public_post(evaluator, store, nobody):
    store.set("posts/public_post", {"authorId": THEIR_ID, "visibility": "public"})
    assert (await evaluator.authorize(Action.READ, "posts/public_post", nobody)).allowed


async def test_can_read_own_private_post(evaluator, store, me):
    store.set("posts/private_post", {"authorId": MY_ID, "visibility": "private"})
    assert (await evaluator.authorize(Action.READ, "posts/private_post", me)).allowed


async def test_cant_read_private_post_of_another_user(evaluator, store, me, nobody):
    store.set("posts/private_post", {"authorId": THEIR_ID, "visibility": "private"})
    assert (await evaluator.authorize(Action.READ, "posts/private_post", me)).reason == DenyReason.NOT_OWNER
    assert (await evaluator.authorize(Action.READ, "posts/private_post", nobody)).reason == DenyReason.UNAUTHENTICATED


async def test_reading_missing_post_is_denied(evaluator, me):
    verdict = await evaluator.authorize(Action.READ, "posts/ghost", me)
    assert verdict.reason == DenyReason.NOT_FOUND


# --- post creation ---

async def test_can_create_own_post(evaluator, me):
    verdict = await evaluator.authorize(Action.CREATE, "posts/new_post", me, full_post(MY_ID, tags=["x"]))
    assert verdict.allowed


async def test_cant_create_post_as_someone_else(evaluator, me):
    verdict = await evaluator.authorize(Action.CREATE, "posts/new_post", me, full_post(THEIR_ID))
    assert verdict.reason == DenyReason.NOT_OWNER


async def test_cant_create_post_with_missing_fields(evaluator, me):
    verdict = await evaluator.authorize(Action.CREATE, "posts/new_post", me, {"authorId": MY_ID, "visibility": "public"})
    assert verdict.reason == DenyReason.MISSING_REQUIRED_FIELD


async def test_cant_create_post_with_extra_fields(evaluator, me):
    verdict = await evaluator.authorize(Action.CREATE, "posts/new_post", me, full_post(MY_ID, not_allowed=True))
    assert verdict.reason == DenyReason.UNKNOWN_FIELD


async def test_anonymous_cant_create_post(evaluator, nobody):
    verdict = await evaluator.authorize(Action.CREATE, "posts/new_post", nobody, full_post(MY_ID))
    assert verdict.reason == DenyReason.UNAUTHENTICATED


async def test_created_post_is_readable_by_its_author(evaluator, store, me):
    post = full_post(MY_ID, visibility="private")
    assert (await evaluator.authorize(Action.CREATE, "posts/mine", me, post)).allowed
    # The interception point applies the write once it gets Allow
    store.set("posts/mine", post)
    assert (await evaluator.authorize(Action.READ, "posts/mine", me)).allowed


# --- post updates ---

async def test_author_can_update_post(evaluator, rooms, them):
    verdict = await evaluator.authorize(Action.UPDATE, "posts/post_123", them, {"headline": "Edited"})
    assert verdict.allowed


async def test_other_user_cant_update_post(evaluator, rooms, me):
    verdict = await evaluator.authorize(Action.UPDATE, "posts/post_123", me, {"headline": "Edited"})
    assert verdict.reason == DenyReason.NOT_OWNER


async def test_moderator_can_update_any_post(evaluator, rooms, moderator):
    verdict = await evaluator.authorize(Action.UPDATE, "posts/post_123", moderator, {"headline": "Edited"})
    assert verdict.allowed
    verdict = await evaluator.authorize(Action.UPDATE, "rooms/room_abc/posts/post_123", moderator, {"headline": "Edited"})
    assert verdict.allowed


async def test_moderator_claim_set_to_false_grants_nothing(evaluator, rooms):
    not_mod = Identity.authenticated_as(MY_ID, {"isModerator": False})
    assert not (await evaluator.authorize(Action.UPDATE, "posts/post_123", not_mod, {"headline": "x"})).allowed


@pytest.mark.parametrize("value", ["false", "true", 1])
async def test_non_boolean_moderator_claim_grants_nothing(evaluator, rooms, value):
    not_mod = Identity.authenticated_as(MY_ID, {"isModerator": value})
    verdict = await evaluator.authorize(Action.UPDATE, "posts/post_123", not_mod, {"headline": "x"})
    assert verdict.reason == DenyReason.NOT_OWNER


async def test_room_moderator_can_update_room_post(evaluator, rooms, room_mod):
    verdict = await evaluator.authorize(Action.UPDATE, "rooms/room_abc/posts/post_123", room_mod, {"headline": "Edited"})
    assert verdict.allowed


async def test_room_moderator_has_no_authority_over_top_level_posts(evaluator, rooms, room_mod):
    verdict = await evaluator.authorize(Action.UPDATE, "posts/post_123", room_mod, {"headline": "Edited"})
    assert verdict.reason == DenyReason.NOT_OWNER


async def test_room_moderator_is_scoped_to_their_room(evaluator, rooms, room_mod):
    rooms.set("rooms/room_other", {"topic": "Other", "roomMods": []})
    rooms.set("rooms/room_other/posts/post_123", full_post(THEIR_ID))
    verdict = await evaluator.authorize(Action.UPDATE, "rooms/room_other/posts/post_123", room_mod, {"headline": "x"})
    assert verdict.reason == DenyReason.NOT_MODERATOR


async def test_update_cant_add_unknown_fields(evaluator, rooms, them, moderator):
    for identity in (them, moderator):
        verdict = await evaluator.authorize(Action.UPDATE, "posts/post_123", identity, {"not_allowed": True})
        assert verdict.reason == DenyReason.UNKNOWN_FIELD


async def test_update_checks_types_of_merged_document(evaluator, rooms, them):
    verdict = await evaluator.authorize(Action.UPDATE, "posts/post_123", them, {"visibility": "everyone"})
    assert verdict.reason == DenyReason.INVALID_FIELD_TYPE


async def test_update_of_legacy_partial_post_is_allowed(evaluator, store, them):
    # Documents written before the schema existed only carry authorId and visibility
    store.set("posts/old", {"authorId": THEIR_ID, "visibility": "public"})
    assert (await evaluator.authorize(Action.UPDATE, "posts/old", them, {"headline": "Now with headline"})).allowed


async def test_updating_missing_post_is_denied(evaluator, moderator):
    verdict = await evaluator.authorize(Action.UPDATE, "posts/ghost", moderator, {"headline": "x"})
    assert verdict.reason == DenyReason.NOT_FOUND


# --- post deletes ---

async def test_delete_follows_update_authority(evaluator, rooms, me, them, moderator, room_mod):
    assert not (await evaluator.authorize(Action.DELETE, "posts/post_123", me)).allowed
    assert not (await evaluator.authorize(Action.DELETE, "posts/post_123", room_mod)).allowed
    assert (await evaluator.authorize(Action.DELETE, "posts/post_123", them)).allowed
    assert (await evaluator.authorize(Action.DELETE, "posts/post_123", moderator)).allowed
    assert (await evaluator.authorize(Action.DELETE, "rooms/room_abc/posts/post_123", room_mod)).allowed


# --- nested posts ---

async def test_room_posts_read_like_posts(evaluator, store, me, nobody):
    store.set("rooms/room_abc/posts/secret", {"authorId": MY_ID, "visibility": "private"})
    assert (await evaluator.authorize(Action.READ, "rooms/room_abc/posts/secret", me)).allowed
    assert not (await evaluator.authorize(Action.READ, "rooms/room_abc/posts/secret", nobody)).allowed


async def test_room_post_create_follows_post_create(evaluator, rooms, me):
    path = "rooms/room_abc/posts/new"
    assert (await evaluator.authorize(Action.CREATE, path, me, full_post(MY_ID))).allowed
    assert not (await evaluator.authorize(Action.CREATE, path, me, full_post(THEIR_ID))).allowed


async def test_owner_can_update_post_in_missing_room(evaluator, store, them):
    store.set("rooms/gone/posts/p1", full_post(THEIR_ID))
    assert (await evaluator.authorize(Action.UPDATE, "rooms/gone/posts/p1", them, {"headline": "x"})).allowed


# --- rooms and structural errors ---

async def test_rooms_have_no_matching_rule(evaluator, rooms, room_mod):
    assert (await evaluator.authorize(Action.READ, "rooms/room_abc", room_mod)).reason == DenyReason.NO_MATCHING_RULE
    assert not (await evaluator.authorize(Action.UPDATE, "rooms/room_abc", room_mod, {"topic": "x"})).allowed


async def test_invalid_paths_are_denied(evaluator, me):
    assert (await evaluator.authorize(Action.READ, "comments/c1", me)).reason == DenyReason.INVALID_PATH
    # Reads need a document, queries need a collection
    assert (await evaluator.authorize(Action.READ, "posts", me)).reason == DenyReason.INVALID_PATH
    assert (await evaluator.authorize(Action.LIST, "posts/p1", me)).reason == DenyReason.INVALID_PATH


async def test_unknown_operation_is_denied(evaluator, me):
    verdict = await evaluator.authorize("truncate", "posts/p1", me)
    assert verdict.reason == DenyReason.UNSUPPORTED_OPERATION


async def test_authorize_request(evaluator, me):
    request = AuthorizationRequest(operation="create", path=f"users/{MY_ID}", data={"foo": "bar"})
    assert (await evaluator.authorize_request(request, me)).allowed


# --- fail closed ---

class UnreachableStore:
    async def get(self, locator):
        raise ConnectionError("connection refused")


async def test_store_failure_denies_even_the_owner(them):
    evaluator = PolicyEvaluator(RelationshipResolver(UnreachableStore()))
    verdict = await evaluator.authorize(Action.UPDATE, "posts/post_123", them, {"headline": "x"})
    assert verdict.reason == DenyReason.STORE_UNAVAILABLE
    # Rules that need no lookup are unaffected
    assert (await evaluator.authorize(Action.READ, "readonly/doc", them)).allowed
