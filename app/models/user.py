from pydantic import BaseModel, EmailStr
from typing import Any, Dict, Optional

class UserDocument(BaseModel):
    """Profile stored at users/{id}. The owner is the user whose uid equals the id."""
    id: str
    name: str
    email: EmailStr
    isModerator: bool = False

class TokenData(BaseModel):
    """Used for parsing the decoded Firebase ID token."""
    uid: Optional[str] = None
    email: Optional[str] = None
    claims: Dict[str, Any] = {}
