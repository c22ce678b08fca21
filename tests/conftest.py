import pytest

from app.core.identity import Identity
from app.db.memory import InMemoryDocumentStore
from app.services.policy import PolicyEvaluator
from app.services.resolver import RelationshipResolver

MY_ID = "user_abc"
THEIR_ID = "user_xyz"
ROOM_MOD_ID = "user_mod2"

MY_USER_DATA = {"name": "User ABC", "email": "abc@gamil.com"}
THEIR_USER_DATA = {"name": "User XYZ", "email": "xyz@gamil.com"}


@pytest.fixture
def store():
    """Same starting state as the emulator suite: two users, nothing else."""
    return InMemoryDocumentStore({
        f"users/{MY_ID}": MY_USER_DATA,
        f"users/{THEIR_ID}": THEIR_USER_DATA,
    })


@pytest.fixture
def evaluator(store):
    return PolicyEvaluator(RelationshipResolver(store, timeout=1.0))


@pytest.fixture
def me():
    return Identity.authenticated_as(MY_ID)


@pytest.fixture
def them():
    return Identity.authenticated_as(THEIR_ID)


@pytest.fixture
def nobody():
    return Identity.anonymous()


@pytest.fixture
def moderator():
    return Identity.authenticated_as("user_mod", {"isModerator": True})


@pytest.fixture
def room_mod():
    return Identity.authenticated_as(ROOM_MOD_ID)


def full_post(author_id, **extra):
    post = {
        "authorId": author_id,
        "visibility": "public",
        "headline": "Headline",
        "content": "Some content",
    }
    post.update(extra)
    return post
