import sys
import os

# Add the parent directory to the path so we can import our models
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.core.locator import document
from app.db.firestore import get_db
from app.models.post import PostDocument, RoomDocument
from app.models.user import UserDocument

MY_ID = "user_abc"
THEIR_ID = "user_xyz"
ROOM_MOD_ID = "user_mod2"
ROOM_ID = "room_abc"

def fixtures():
    """Reference state for exercising the rules against the emulator."""
    users = [
        UserDocument(id=MY_ID, name="User ABC", email="abc@gamil.com"),
        UserDocument(id=THEIR_ID, name="User XYZ", email="xyz@gamil.com"),
        UserDocument(id=ROOM_MOD_ID, name="Room Mod", email="mod2@gamil.com"),
        UserDocument(id="user_mod", name="Global Mod", email="mod@gamil.com", isModerator=True),
    ]
    docs = {f"users/{u.id}": u.model_dump(exclude={"id"}) for u in users}

    public_post = PostDocument(authorId=THEIR_ID, visibility="public", headline="Hello", content="Public post")
    private_post = PostDocument(authorId=THEIR_ID, visibility="private", headline="Secret", content="Private post")
    docs["posts/public_post"] = public_post.model_dump(exclude_none=True)
    docs["posts/private_post"] = private_post.model_dump(exclude_none=True)
    docs["posts/post_123"] = public_post.model_dump(exclude_none=True)

    room = RoomDocument(topic="General", roomMods=[ROOM_MOD_ID])
    docs[f"rooms/{ROOM_ID}"] = room.model_dump()
    docs[f"rooms/{ROOM_ID}/posts/post_123"] = public_post.model_dump(exclude_none=True)
    return docs

def seed_rules_fixtures():
    print("Seeding reference documents...")
    db = get_db()

    # The admin SDK writes past the security rules
    for path, data in fixtures().items():
        db.document(document(path).path).set(data)
        print(f"  wrote {path}")

    print("Done.")

if __name__ == "__main__":
    seed_rules_fixtures()
