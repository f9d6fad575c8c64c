"""
Request-scoped dependencies: database session and the caller's auth context.

The identity service issues bearer tokens carrying the acting member (sub) and
the organization they act for (org_id). Every tenant query is scoped by that
organization.
"""
import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from retail_ledger.database import get_db
from retail_ledger.exceptions import AuthenticationRequired
from retail_ledger.utils.auth_internal import CLAIM_ORG_ID, CLAIM_SUB, decode_access_token

logger = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)

__all__ = ["AuthContext", "get_auth_context", "get_db"]


@dataclass(frozen=True)
class AuthContext:
    member_id: UUID
    organization_id: UUID


def get_auth_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> AuthContext:
    """Resolve the acting member and organization from the Authorization header, or 401."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationRequired()
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise AuthenticationRequired("Invalid or expired token")
    try:
        return AuthContext(
            member_id=UUID(str(payload[CLAIM_SUB])),
            organization_id=UUID(str(payload[CLAIM_ORG_ID])),
        )
    except (KeyError, ValueError):
        logger.warning("Token carried malformed member or organization id")
        raise AuthenticationRequired("Invalid token claims")
