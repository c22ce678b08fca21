import logging
from typing import Optional
from firebase_admin import auth as firebase_auth
from fastapi import APIRouter, Depends, HTTPException, status, Header

from app.core.config import PROFILE_CLAIMS_ENABLED, STORE_BACKEND
from app.core.identity import Identity
from app.db.firestore import FirestoreDocumentStore, initialize_app
from app.db.memory import InMemoryDocumentStore
from app.services.claims import ProfileClaimsProvider, build_identity

logger = logging.getLogger("rules.auth")

router = APIRouter()

# --- STORE ---
_store = None

def get_store():
    """The document store shared by claims lookups and the evaluator."""
    global _store
    if _store is None:
        _store = InMemoryDocumentStore() if STORE_BACKEND == "memory" else FirestoreDocumentStore()
    return _store

def get_claims_provider(store=Depends(get_store)) -> Optional[ProfileClaimsProvider]:
    return ProfileClaimsProvider(store) if PROFILE_CLAIMS_ENABLED else None

def verify_token(token: str) -> dict:
    initialize_app()
    return firebase_auth.verify_id_token(token)

# --- DEPENDENCY ---
async def get_current_identity(
    authorization: Optional[str] = Header(None),
    claims_provider: Optional[ProfileClaimsProvider] = Depends(get_claims_provider),
) -> Identity:
    """
    Verifies the Firebase Bearer Token if one is sent.
    No header means the caller is signed out, which is a valid identity too.
    """
    if not authorization:
        return Identity.anonymous()

    if not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Invalid header format")

    token = authorization.split("Bearer ")[1]
    try:
        decoded_token = verify_token(token)
    except Exception as e:
        logger.error(f"Auth failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    return await build_identity(decoded_token, claims_provider)

# --- ROUTES ---

@router.get("/me")
async def read_identity(identity: Identity = Depends(get_current_identity)):
    """Returns the identity the rules will see for this caller."""
    return {
        "authenticated": identity.is_authenticated(),
        "uid": identity.uid,
        "subject": identity.subject().value,
        "claims": dict(identity.claims),
    }
