import logging
from typing import Any, Dict, Optional

from app.core.errors import InvalidPath, StoreUnavailable
from app.core.identity import Identity, MODERATOR_CLAIM
from app.core.locator import parse_path
from app.models.user import TokenData
from app.services.resolver import DocumentStore

logger = logging.getLogger("rules.auth")

# Standard Firebase ID token fields; everything else is a custom claim
RESERVED_TOKEN_FIELDS = {
    "uid", "user_id", "sub", "aud", "iss", "iat", "exp", "auth_time",
    "firebase", "email", "email_verified", "name", "picture", "phone_number",
}


class ProfileClaimsProvider:
    """Reads role flags from the caller's own users/{uid} document."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def claims(self, uid: str) -> Dict[str, Any]:
        try:
            profile = await self.store.get(parse_path(f"users/{uid}"))
        except (InvalidPath, StoreUnavailable) as e:
            # Profile claims only widen access; drop them on failure
            logger.warning(f"Profile claims unavailable for {uid}: {e}")
            return {}
        if not profile:
            return {}
        return {MODERATOR_CLAIM: profile.get(MODERATOR_CLAIM) is True}


def parse_token(decoded_token: Optional[Dict[str, Any]]) -> TokenData:
    if not decoded_token:
        return TokenData()
    return TokenData(
        uid=decoded_token.get("uid") or decoded_token.get("user_id") or decoded_token.get("sub"),
        email=decoded_token.get("email"),
        claims={k: v for k, v in decoded_token.items() if k not in RESERVED_TOKEN_FIELDS},
    )


async def build_identity(
    decoded_token: Optional[Dict[str, Any]],
    claims_provider: Optional[ProfileClaimsProvider] = None,
) -> Identity:
    """
    Turns a verified ID token (or None for a signed-out caller) into an
    Identity. Claims carried by the token take precedence over profile claims.
    """
    token = parse_token(decoded_token)
    if not token.uid:
        return Identity.anonymous()

    claims: Dict[str, Any] = {}
    if claims_provider is not None:
        claims.update(await claims_provider.claims(token.uid))
    claims.update(token.claims)

    logger.debug(f"Identity resolved for {token.uid} with claims {sorted(claims)}")
    return Identity.authenticated_as(token.uid, claims)
