"""
Field-level write schemas, one per collection kind.

A schema only knows about document shape. Whether the caller may write the
document at all is decided by the policy evaluator; the two are combined
there and either one can deny a write.
"""
from typing import Any, Dict, FrozenSet, Mapping, Optional, Type
from pydantic import BaseModel, ValidationError

from app.core.locator import CollectionKind
from app.core.rbac import Action
from app.models.post import PostDocument
from app.models.verdict import DenyReason, Verdict


class DocumentSchema:
    """
    Required / optional field sets plus per-field type checks, derived from a
    pydantic model. A closed schema rejects any field it does not name.
    """

    def __init__(self, model: Type[BaseModel], closed: bool = True):
        self.model = model
        self.closed = closed
        self.required: FrozenSet[str] = frozenset(
            name for name, field in model.model_fields.items() if field.is_required()
        )
        self.optional: FrozenSet[str] = frozenset(model.model_fields) - self.required

    @property
    def permitted(self) -> FrozenSet[str]:
        return self.required | self.optional

    def unknown_fields(self, data: Mapping[str, Any]):
        if not self.closed:
            return []
        return sorted(k for k in data if k not in self.permitted)

    def missing_fields(self, data: Mapping[str, Any]):
        return sorted(k for k in self.required if k not in data)

    def type_errors(self, data: Mapping[str, Any]):
        """Field names whose values fail the model's type constraints."""
        try:
            self.model.model_validate(dict(data))
        except ValidationError as e:
            bad = set()
            for err in e.errors():
                # Completeness and closed-ness are reported separately
                if err["type"] in ("missing", "extra_forbidden"):
                    continue
                if err["loc"]:
                    bad.add(str(err["loc"][0]))
            return sorted(bad)
        return []

    def validate(self, data: Mapping[str, Any], require_complete: bool = True) -> Verdict:
        unknown = self.unknown_fields(data)
        if unknown:
            return Verdict.deny(DenyReason.UNKNOWN_FIELD, f"Fields not allowed: {', '.join(unknown)}")

        if require_complete:
            missing = self.missing_fields(data)
            if missing:
                return Verdict.deny(DenyReason.MISSING_REQUIRED_FIELD, f"Missing fields: {', '.join(missing)}")

        bad_types = self.type_errors(data)
        if bad_types:
            return Verdict.deny(DenyReason.INVALID_FIELD_TYPE, f"Invalid values for: {', '.join(bad_types)}")

        return Verdict.allow()


POST_SCHEMA = DocumentSchema(PostDocument)

# users/ and readonly/ carry no field schema
SCHEMAS: Dict[CollectionKind, DocumentSchema] = {
    CollectionKind.POSTS: POST_SCHEMA,
    CollectionKind.ROOM_POSTS: POST_SCHEMA,
}


def validate(kind: CollectionKind, action: Action, proposed: Optional[Mapping[str, Any]]) -> Verdict:
    """
    Checks the proposed post-write state of a document.
    Create must be complete; update only has to stay inside the allowed field set.
    """
    schema = SCHEMAS.get(kind)
    if schema is None or action not in (Action.CREATE, Action.UPDATE):
        return Verdict.allow()
    return schema.validate(proposed or {}, require_complete=(action == Action.CREATE))
