# src/threadline/api/v1/endpoints/auth.py
"""Authentication endpoints for the Threadline API."""

from __future__ import annotations

from fastapi import APIRouter, status

from threadline.api.v1.dependencies import SessionDep, ViewerSessionDep
from threadline.schemas.user import LoginRequest, LoginResponse, RegisterRequest
from threadline.services import auth as auth_service
from threadline.services.session import SessionManager

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/register", response_model=LoginResponse, status_code=status.HTTP_201_CREATED)
async def register(request: RegisterRequest, db: SessionDep) -> LoginResponse:
    """Create an account and sign it in."""
    profile = auth_service.register(db, request)
    return auth_service.issue_login(profile)


@router.post("/login", response_model=LoginResponse)
async def login(request: LoginRequest, db: SessionDep) -> LoginResponse:
    """Exchange email and password for an access token."""
    profile = auth_service.authenticate(db, request.email, request.password)
    return auth_service.issue_login(profile)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(session: ViewerSessionDep, db: SessionDep) -> None:
    """End the viewer session. Tokens are stateless; clients discard theirs."""
    SessionManager(db).end(session)
