"""Admin authentication endpoints backed by Supabase Auth."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from formchat.core.auth_middleware import AuthContext, require_admin
from formchat.core.schemas_auth import AdminUser, LoginRequest, LoginResponse, SessionResponse
from formchat.db.supabase_client import get_supabase as get_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
async def login_with_password(request: LoginRequest):
    """Login with email and password."""
    try:
        client = get_client()
        response = client.auth.sign_in_with_password({
            "email": request.email,
            "password": request.password,
        })
    except Exception as e:
        logger.warning(f"Login failed for {request.email}: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        ) from e

    if not response or not response.session:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    session = response.session
    return LoginResponse(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        expires_at=session.expires_at,
        user=AdminUser(id=str(response.user.id), email=response.user.email),
    )


@router.post("/logout")
async def logout(auth: AuthContext = Depends(require_admin)):
    """Log out the current admin."""
    try:
        get_client().auth.sign_out()
        return {"message": "Logged out successfully"}
    except Exception as e:
        logger.error(f"Logout error: {e}")
        # Token still expires on its own
        return {"message": "Logged out"}


@router.get("/me", response_model=SessionResponse)
async def get_current_session(auth: AuthContext = Depends(require_admin)):
    return SessionResponse(user=auth.user, auth_method=auth.auth_method)
