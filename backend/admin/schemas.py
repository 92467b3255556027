"""Pydantic request / response models for the master-only admin endpoints."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

AccountType = Literal["client", "instructor", "admin", "trial", "demo"]


# -- Requests --------------------------------------------------------------


class GenerateAccountsRequest(BaseModel):
    account_type: AccountType
    count: int = Field(ge=1, le=500)
    # Negative = minutes, otherwise days.  Defaults per type when omitted.
    license_duration_days: Optional[int] = None


class QuickPasswordsRequest(BaseModel):
    prefix: str = "TESTE"
    quantity: int = Field(default=10, ge=1, le=500)
    license_duration_days: int = 7


class RenewLicenseRequest(BaseModel):
    # Negative = minutes, otherwise days; counted from now
    duration: int


class CreateMasterCredentialRequest(BaseModel):
    username: str
    password: str = Field(min_length=8)
    full_name: Optional[str] = None


# -- Responses -------------------------------------------------------------


class PreGeneratedAccountRow(BaseModel):
    id: int
    username: str
    license_key: str
    account_type: str
    license_duration_days: int
    is_used: bool
    used_by_profile_id: Optional[str] = None
    used_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class PreGeneratedAccountListResponse(BaseModel):
    accounts: List[PreGeneratedAccountRow]


class LicenseRow(BaseModel):
    id: int
    profile_id: str
    license_type: str
    status: str
    started_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class MasterCredentialRow(BaseModel):
    id: int
    username: str
    full_name: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class MasterCredentialListResponse(BaseModel):
    credentials: List[MasterCredentialRow]


# -- Audit log responses ---------------------------------------------------


class AuditLogRow(BaseModel):
    id: int
    actor_email: Optional[str] = None       # resolved from actor_user_id
    target_username: Optional[str] = None   # resolved from target_profile_id
    action: str
    detail: Optional[str] = None
    request_ip: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class AuditLogListResponse(BaseModel):
    logs: List[AuditLogRow]
