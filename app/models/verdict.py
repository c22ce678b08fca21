from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict


class DenyReason(str, Enum):
    UNAUTHENTICATED = "Unauthenticated"
    NOT_OWNER = "NotOwner"
    NOT_MODERATOR = "NotModerator"
    MISSING_REQUIRED_FIELD = "MissingRequiredField"
    UNKNOWN_FIELD = "UnknownField"
    INVALID_FIELD_TYPE = "InvalidFieldType"
    UNCONSTRAINED_QUERY = "UnconstrainedQuery"
    INVALID_PATH = "InvalidPath"
    NOT_FOUND = "NotFound"
    READ_ONLY_COLLECTION = "ReadOnlyCollection"
    NO_MATCHING_RULE = "NoMatchingRule"
    UNSUPPORTED_OPERATION = "UnsupportedOperation"
    STORE_UNAVAILABLE = "StoreUnavailable"


class Verdict(BaseModel):
    """Outcome of one policy evaluation. Deny verdicts always carry a reason."""
    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: Optional[DenyReason] = None
    detail: str = ""

    @classmethod
    def allow(cls, detail: str = "") -> "Verdict":
        return cls(allowed=True, detail=detail)

    @classmethod
    def deny(cls, reason: DenyReason, detail: str = "") -> "Verdict":
        return cls(allowed=False, reason=reason, detail=detail)

    def __bool__(self) -> bool:
        return self.allowed
