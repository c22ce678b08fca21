from fastapi import APIRouter, Depends

from app.core.config import FETCH_TIMEOUT_SECONDS
from app.core.identity import Identity
from app.models.request import AuthorizationRequest
from app.models.verdict import Verdict
from app.api.v1.endpoints.auth import get_current_identity, get_store
from app.services.policy import PolicyEvaluator
from app.services.resolver import RelationshipResolver

router = APIRouter()

def get_evaluator(store=Depends(get_store)) -> PolicyEvaluator:
    return PolicyEvaluator(RelationshipResolver(store, timeout=FETCH_TIMEOUT_SECONDS))

@router.post("/authorize", response_model=Verdict)
async def authorize(
    request: AuthorizationRequest,
    identity: Identity = Depends(get_current_identity),
    evaluator: PolicyEvaluator = Depends(get_evaluator),
):
    """
    Decides a single proposed read or write. A deny is a normal answer,
    so this always responds 200 with the verdict; the caller applies the
    write only when `allowed` is true.
    """
    return await evaluator.authorize_request(request, identity)
