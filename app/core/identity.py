from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.core.errors import NoIdentity

MODERATOR_CLAIM = "isModerator"


class Subject(str, Enum):
    """Who is calling, as far as the rules care."""
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"
    MODERATOR = "moderator"


class Identity(BaseModel):
    """
    The caller of a single operation. Built once per request from the
    authentication layer and never mutated afterwards.
    """
    model_config = ConfigDict(frozen=True)

    authenticated: bool = False
    uid: Optional[str] = None
    claims: Mapping[str, Any] = Field(default_factory=dict, validate_default=True)

    @field_validator("claims", mode="after")
    @classmethod
    def _freeze_claims(cls, value):
        return MappingProxyType(dict(value))

    @model_validator(mode="after")
    def _check_consistency(self):
        if not self.authenticated and (self.uid is not None or self.claims):
            raise ValueError("Anonymous identities cannot carry a uid or claims")
        if self.authenticated and not self.uid:
            raise ValueError("Authenticated identities need a uid")
        return self

    @classmethod
    def anonymous(cls) -> "Identity":
        return cls()

    @classmethod
    def authenticated_as(cls, uid: str, claims: Optional[Dict[str, Any]] = None) -> "Identity":
        return cls(authenticated=True, uid=uid, claims=dict(claims or {}))

    def is_authenticated(self) -> bool:
        return self.authenticated

    def require_uid(self) -> str:
        if not self.authenticated:
            raise NoIdentity("Operation requires a signed-in user")
        return self.uid

    def has_claim(self, name: str) -> bool:
        # Only a literal true grants the claim; "false", 1 or "yes" do not
        return self.claims.get(name) is True

    def subject(self) -> Subject:
        if not self.authenticated:
            return Subject.ANONYMOUS
        if self.has_claim(MODERATOR_CLAIM):
            return Subject.MODERATOR
        return Subject.AUTHENTICATED
