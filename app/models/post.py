from enum import Enum
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, StrictStr


class Visibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class PostDocument(BaseModel):
    """Shape of documents in posts/ and rooms/{id}/posts/. No other fields are accepted."""
    model_config = ConfigDict(extra="forbid")

    authorId: StrictStr
    visibility: Literal["public", "private"]
    headline: StrictStr
    content: StrictStr

    location: Optional[StrictStr] = None
    tags: Optional[List[StrictStr]] = None
    photo: Optional[StrictStr] = None


class RoomDocument(BaseModel):
    topic: str = ""
    # User ids allowed to moderate posts nested in this room
    roomMods: List[str] = Field(default_factory=list)
