"""
Internal JWT handling for API access tokens.

Membership and login live in an external identity service; this module only
issues and verifies the bearer tokens that carry the acting member and the
organization they act for.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import uuid4

from jose import JWTError, jwt

from retail_ledger.config import settings

# JWT claim names
CLAIM_SUB = "sub"
CLAIM_ORG_ID = "org_id"
CLAIM_TYPE = "type"
CLAIM_EXP = "exp"
CLAIM_ISS = "iss"
CLAIM_JTI = "jti"

TYPE_ACCESS = "access"
ISSUER_INTERNAL = "retail-ledger-internal"


def create_access_token(member_id: str, organization_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """Create an access token for member_id acting within organization_id."""
    now = datetime.now(timezone.utc)
    delta = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        CLAIM_SUB: str(member_id),
        CLAIM_ORG_ID: str(organization_id),
        CLAIM_JTI: str(uuid4()),
        CLAIM_TYPE: TYPE_ACCESS,
        CLAIM_ISS: ISSUER_INTERNAL,
        CLAIM_EXP: now + delta,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    """Decode and verify an access token. Returns the payload, or None when invalid or expired."""
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            options={"verify_iss": True},
            issuer=ISSUER_INTERNAL,
        )
    except JWTError:
        return None
    if payload.get(CLAIM_TYPE) != TYPE_ACCESS:
        return None
    if not payload.get(CLAIM_SUB) or not payload.get(CLAIM_ORG_ID):
        return None
    return payload
