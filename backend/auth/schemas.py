"""Pydantic request / response models for the auth endpoints."""

from typing import Literal, Optional

from pydantic import BaseModel, Field

PanelType = Literal["client", "instructor", "admin"]


# -- Requests --------------------------------------------------------------


class LoginRequest(BaseModel):
    username: str = ""
    password: str = ""
    device_info: Optional[str] = Field(default=None, alias="deviceInfo")
    panel_type: PanelType = Field(default="client", alias="panelType")

    model_config = {"populate_by_name": True}


class RefreshRequest(BaseModel):
    refresh_token: str


class SessionTokenRequest(BaseModel):
    session_token: str


# -- Responses -------------------------------------------------------------


class UserInfo(BaseModel):
    id: str
    email: str
    profile_id: str
    username: str
    full_name: Optional[str] = None
    role: str


class LicenseInfo(BaseModel):
    type: str
    status: str
    expires_at: Optional[str] = None
    time_remaining_ms: Optional[int] = None


class SessionInfo(BaseModel):
    access_token: str
    refresh_token: str
    # Opaque single-session token; poll /auth/session/validate with it
    session_token: str


class LoginResponse(BaseModel):
    success: bool
    user: UserInfo
    license: Optional[LicenseInfo] = None
    session: SessionInfo


class LoginFailure(BaseModel):
    success: bool = False
    error: str
    license: Optional[LicenseInfo] = None


class HydrateResponse(BaseModel):
    success: bool
    user: UserInfo
    license: Optional[LicenseInfo] = None


class TokenPairResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str  # always "bearer"


class SessionValidationResponse(BaseModel):
    valid: bool
    error: Optional[str] = None
