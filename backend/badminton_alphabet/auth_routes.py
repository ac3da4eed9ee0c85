"""Sign-in endpoints: OAuth popup handshake, identity sync and local credentials."""

from __future__ import annotations

import logging
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, ConfigDict, Field

from .config import Settings
from .identity import AuthClaims, IdentityService
from .identity_provider import build_authorize_url
from .schemas import UserPayload, UserRole


router = APIRouter(prefix="/api/auth", tags=["auth"])
callback_router = APIRouter(tags=["auth"])
logger = logging.getLogger(__name__)

OAUTH_CALLBACK_HTML = """<!DOCTYPE html>
<html>
  <head><title>Signing in</title></head>
  <body>
    <p>Authentication complete. You can close this window.</p>
    <script>
      if (window.opener) {
        window.opener.postMessage({ type: "OAUTH_AUTH_SUCCESS" }, "*");
      }
      window.close();
    </script>
  </body>
</html>
"""


class AuthSyncRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    external_id: Optional[str] = Field(default=None, alias="supabase_uid")
    email: Optional[str] = None
    name: Optional[str] = None
    access_token: Optional[str] = Field(default=None, alias="accessToken")
    role: Optional[UserRole] = None
    invitation_token: Optional[str] = Field(default=None, alias="invitationToken")


class RegisterRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str = Field(..., min_length=3)
    password: str
    name: Optional[str] = None
    role: Optional[UserRole] = None
    invitation_token: Optional[str] = Field(default=None, alias="invitationToken")


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


def get_settings_dependency(request: Request) -> Settings:
    return request.app.state.settings


def get_identity_service(request: Request) -> IdentityService:
    return request.app.state.identity_service


@router.get("/url", status_code=status.HTTP_200_OK)
def auth_url(
    provider: str = Query(default="google", min_length=1),
    settings: Settings = Depends(get_settings_dependency),
) -> Dict[str, str]:
    return {"url": build_authorize_url(settings, provider)}


@router.post("/sync", response_model=UserPayload, status_code=status.HTTP_200_OK)
def sync_identity(
    payload: AuthSyncRequest,
    service: IdentityService = Depends(get_identity_service),
) -> UserPayload:
    claims = AuthClaims(
        external_id=payload.external_id,
        email=payload.email,
        access_token=payload.access_token,
        display_name=payload.name,
        requested_role=payload.role,
        invitation_token=payload.invitation_token,
    )
    user = service.reconcile(claims)
    return UserPayload.model_validate(user)


@router.post("/register", response_model=UserPayload, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    service: IdentityService = Depends(get_identity_service),
) -> UserPayload:
    user = service.register_local(
        email=payload.email,
        password=payload.password,
        name=payload.name,
        role=payload.role,
        invitation_token=payload.invitation_token,
    )
    return UserPayload.model_validate(user)


@router.post("/login", response_model=UserPayload, status_code=status.HTTP_200_OK)
def login(
    payload: LoginRequest,
    service: IdentityService = Depends(get_identity_service),
) -> UserPayload:
    user = service.login_local(email=payload.email, password=payload.password)
    return UserPayload.model_validate(user)


@callback_router.get("/auth/callback", response_class=HTMLResponse, include_in_schema=False)
@callback_router.get("/auth/callback/", response_class=HTMLResponse, include_in_schema=False)
def oauth_callback() -> HTMLResponse:
    return HTMLResponse(content=OAUTH_CALLBACK_HTML)


__all__ = ["callback_router", "get_identity_service", "get_settings_dependency", "router"]
