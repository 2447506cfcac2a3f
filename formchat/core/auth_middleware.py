"""Authentication dependencies for admin endpoints."""

import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from formchat.core.config import get_settings
from formchat.core.schemas_auth import AdminUser

logger = logging.getLogger(__name__)

# HTTP Bearer scheme for Authorization header
security = HTTPBearer(auto_error=False)

# Identity used for static API key access (scripts, seeding)
SYSTEM_ADMIN = AdminUser(id="system", email="system@formchat.local")


class AuthContext:
    """Context object containing the authenticated admin."""

    def __init__(self, user: AdminUser, token: str, auth_method: str):
        self.user = user
        self.token = token
        self.auth_method = auth_method

    @property
    def user_id(self) -> str:
        return self.user.id

    @property
    def is_api_key(self) -> bool:
        return self.auth_method == "api_key"


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
) -> Optional[AuthContext]:
    """
    Extract and validate the current admin from the request.

    Supports two authentication methods:
    1. Supabase JWT tokens (Bearer auth) issued by /auth/login
    2. Admin API key (X-API-Key header) for scripts and internal tools

    Returns None if no valid auth is present.
    """
    admin_api_key = get_settings().ADMIN_API_KEY
    if x_api_key and admin_api_key and x_api_key == admin_api_key:
        logger.debug("Authenticated via admin API key")
        return AuthContext(user=SYSTEM_ADMIN, token="api-key", auth_method="api_key")

    if not credentials:
        return None

    token = credentials.credentials

    try:
        from formchat.db.supabase_client import get_supabase

        # Validates signature and expiry
        auth_response = get_supabase().auth.get_user(token)
        if not auth_response or not auth_response.user:
            return None

        user = AdminUser(id=str(auth_response.user.id), email=auth_response.user.email)
        return AuthContext(user=user, token=token, auth_method="bearer")

    except Exception as e:
        logger.warning(f"Auth error: {e}")
        return None


async def require_admin(
    auth: Optional[AuthContext] = Depends(get_current_user),
) -> AuthContext:
    """Require an authenticated admin. Raises 401 if not authenticated."""
    if not auth:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return auth
