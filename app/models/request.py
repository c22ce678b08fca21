from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from app.core.rbac import Action


class QueryFilter(BaseModel):
    """One where() clause of a collection query."""
    field: str
    op: str = "=="
    value: Any = None


class AuthorizationRequest(BaseModel):
    """What the interception point hands over for a single read or write."""
    operation: Action
    path: str
    # Proposed document content for create / update
    data: Optional[Dict[str, Any]] = None
    filters: List[QueryFilter] = Field(default_factory=list)
