"""
Admin endpoints – pre-generated accounts, license administration and master
credentials.

Every endpoint in this router is guarded by ``require_master``.  A request
that carries a valid token but belongs to any other role receives 403 before
any business logic runs.  These are the only code paths allowed to revive an
expired or blocked license, or to reissue one that was removed.
"""

import io
import re
import secrets
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Alignment, Border, Side
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from admin.schemas import (
    AuditLogListResponse,
    AuditLogRow,
    CreateMasterCredentialRequest,
    GenerateAccountsRequest,
    LicenseRow,
    MasterCredentialListResponse,
    MasterCredentialRow,
    PreGeneratedAccountListResponse,
    QuickPasswordsRequest,
    RenewLicenseRequest,
)
from auth.licenses import duration_from_config, new_license
from auth.resolver import is_thirty_minute_account, pre_generated_license_type
from core.clock import utcnow
from core.logger import logger
from core.security import hash_password, require_master
from database import get_db
from models.audit_log import AuditLog
from models.identity_user import IdentityUser
from models.license import License
from models.master_credential import MasterCredential
from models.pre_generated_account import PreGeneratedAccount
from models.profile import Profile

router = APIRouter(prefix="/admin", tags=["admin"])

# account_type → (username prefix, license-key prefix, default duration)
_GENERATION_DEFAULTS = {
    "trial": ("TRIAL7", "T7", 7),
    "client": ("FULL30", "F30", 30),
    "instructor": ("INST30", "I30", 30),
    # "ADMIN*" usernames are reserved for 30-minute admin demos
    "admin": ("GERENTE", "ADM", 365),
    "demo": ("DEMO", "DEMO", -30),
}

# No 0/O or 1/I so keys survive being read aloud or typed from paper
_KEY_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def _generate_license_key(prefix: str) -> str:
    groups = ["".join(secrets.choice(_KEY_ALPHABET) for _ in range(4)) for _ in range(3)]
    return "-".join([prefix, *groups])


def _last_sequence(db: Session, name_prefix: str) -> int:
    """Highest NNNN among ``{name_prefix}-NNNN`` usernames, 0 when there are none."""
    pattern = re.compile(rf"{re.escape(name_prefix)}-(\d+)", re.IGNORECASE)
    usernames = (
        db.query(PreGeneratedAccount.username)
        .filter(PreGeneratedAccount.username.like(f"{name_prefix}-%"))
        .all()
    )
    last = 0
    for (username,) in usernames:
        match = pattern.fullmatch(username)
        if match:
            last = max(last, int(match.group(1)))
    return last


def _audit(db: Session, master: IdentityUser, action: str, target_profile_id=None, detail=None) -> None:
    db.add(AuditLog(actor_user_id=master.id, target_profile_id=target_profile_id, action=action, detail=detail))


def _get_or_404(db: Session, model, row_id, label: str):
    row = db.query(model).filter(model.id == row_id).first()
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} não encontrado")
    return row


# ---------------------------------------------------------------------------
# POST /admin/pre-generated  – bulk-issue accounts of one type
# ---------------------------------------------------------------------------


@router.post(
    "/pre-generated",
    response_model=PreGeneratedAccountListResponse,
    status_code=status.HTTP_201_CREATED,
)
def generate_accounts(
    body: GenerateAccountsRequest,
    master: IdentityUser = Depends(require_master),
    db: Session = Depends(get_db),
):
    """
    Create *count* accounts named ``{PREFIX}-{NNNN}``, continuing the
    numbering of earlier batches of the same type.
    """
    name_prefix, key_prefix, default_duration = _GENERATION_DEFAULTS[body.account_type]
    duration = body.license_duration_days if body.license_duration_days is not None else default_duration

    last = _last_sequence(db, name_prefix)

    accounts = [
        PreGeneratedAccount(
            username=f"{name_prefix}-{last + i:04d}",
            license_key=_generate_license_key(key_prefix),
            account_type=body.account_type,
            license_duration_days=duration,
            is_used=False,
        )
        for i in range(1, body.count + 1)
    ]
    db.add_all(accounts)
    _audit(db, master, "generate_accounts", detail=f"type={body.account_type} count={body.count} duration={duration}")
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Algumas contas já existem. Tente novamente.")

    logger.info("Generated %d %s accounts", body.count, body.account_type)
    return PreGeneratedAccountListResponse(accounts=accounts)


# ---------------------------------------------------------------------------
# POST /admin/pre-generated/quick  – PREFIX1..PREFIXn, username == key
# ---------------------------------------------------------------------------


@router.post(
    "/pre-generated/quick",
    response_model=PreGeneratedAccountListResponse,
    status_code=status.HTTP_201_CREATED,
)
def generate_quick_passwords(
    body: QuickPasswordsRequest,
    master: IdentityUser = Depends(require_master),
    db: Session = Depends(get_db),
):
    prefix = body.prefix.strip().upper() or "TESTE"
    accounts = [
        PreGeneratedAccount(
            username=f"{prefix}{i}",
            license_key=f"{prefix}{i}",
            account_type="trial",
            license_duration_days=body.license_duration_days,
            is_used=False,
        )
        for i in range(1, body.quantity + 1)
    ]
    db.add_all(accounts)
    _audit(db, master, "generate_quick_passwords", detail=f"prefix={prefix} quantity={body.quantity}")
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Algumas senhas já existem. Altere o prefixo ou limpe as existentes.",
        )
    return PreGeneratedAccountListResponse(accounts=accounts)


# ---------------------------------------------------------------------------
# GET /admin/pre-generated  – list, optionally filtered by use
# ---------------------------------------------------------------------------


@router.get("/pre-generated", response_model=PreGeneratedAccountListResponse)
def list_accounts(
    is_used: bool | None = Query(None),
    account_type: str | None = Query(None),
    master: IdentityUser = Depends(require_master),
    db: Session = Depends(get_db),
):
    q = db.query(PreGeneratedAccount)
    if is_used is not None:
        q = q.filter(PreGeneratedAccount.is_used.is_(is_used))
    if account_type:
        q = q.filter(PreGeneratedAccount.account_type == account_type)
    return PreGeneratedAccountListResponse(accounts=q.order_by(PreGeneratedAccount.username).all())


# ---------------------------------------------------------------------------
# GET /admin/pre-generated/export  – download as Excel
# ---------------------------------------------------------------------------

_HEADER_FONT  = Font(name="Calibri", size=11, bold=True, color="FFFFFF")
_HEADER_FILL  = PatternFill(start_color="E4572E", end_color="E4572E", fill_type="solid")
_HEADER_ALIGN = Alignment(horizontal="center", vertical="center")
_THIN_BORDER  = Border(
    left=Side(style="thin", color="CCCCCC"),
    right=Side(style="thin", color="CCCCCC"),
    top=Side(style="thin", color="CCCCCC"),
    bottom=Side(style="thin", color="CCCCCC"),
)

_EXPORT_HEADERS = ["Usuário", "Chave de licença", "Tipo", "Duração", "Usada", "Criada em"]
_EXPORT_COL_MIN = [18, 26, 12, 12, 8, 14]


def _duration_label(value: int) -> str:
    if value < 0:
        return f"{abs(value)} min"
    return f"{value} dias"


@router.get("/pre-generated/export")
def export_accounts(
    is_used: bool | None = Query(None),
    master: IdentityUser = Depends(require_master),
    db: Session = Depends(get_db),
):
    q = db.query(PreGeneratedAccount)
    if is_used is not None:
        q = q.filter(PreGeneratedAccount.is_used.is_(is_used))
    rows = q.order_by(PreGeneratedAccount.account_type, PreGeneratedAccount.username).all()

    wb = Workbook()
    ws = wb.active
    ws.title = "Contas pré-geradas"

    ws.append(_EXPORT_HEADERS)
    for cell in ws[1]:
        cell.font = _HEADER_FONT
        cell.fill = _HEADER_FILL
        cell.alignment = _HEADER_ALIGN
        cell.border = _THIN_BORDER

    for row in rows:
        ws.append([
            row.username,
            row.license_key,
            row.account_type,
            _duration_label(row.license_duration_days),
            "Sim" if row.is_used else "Não",
            row.created_at.strftime("%d/%m/%Y") if row.created_at else "",
        ])
        row_idx = ws.max_row
        for col_idx in range(1, len(_EXPORT_HEADERS) + 1):
            ws.cell(row=row_idx, column=col_idx).border = _THIN_BORDER

    for col_idx, min_w in enumerate(_EXPORT_COL_MIN, start=1):
        ws.column_dimensions[chr(64 + col_idx)].width = min_w

    buf = io.BytesIO()
    wb.save(buf)
    buf.seek(0)
    wb.close()

    return StreamingResponse(
        buf,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": 'attachment; filename="pre-generated-accounts.xlsx"'},
    )


# ---------------------------------------------------------------------------
# DELETE /admin/pre-generated/{id}  – only accounts nobody consumed yet
# ---------------------------------------------------------------------------


@router.delete("/pre-generated/{account_id}")
def delete_account(
    account_id: int,
    master: IdentityUser = Depends(require_master),
    db: Session = Depends(get_db),
):
    account = _get_or_404(db, PreGeneratedAccount, account_id, "Conta")
    if account.is_used:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Conta já utilizada não pode ser removida")
    db.delete(account)
    _audit(db, master, "delete_pre_generated", detail=f"username={account.username}")
    db.commit()
    return {"detail": "Conta removida"}


# ---------------------------------------------------------------------------
# POST /admin/pre-generated/{id}/reissue  – new license after a removal
# ---------------------------------------------------------------------------


@router.post("/pre-generated/{account_id}/reissue", response_model=LicenseRow, status_code=status.HTTP_201_CREATED)
def reissue_license(
    account_id: int,
    master: IdentityUser = Depends(require_master),
    db: Session = Depends(get_db),
):
    """
    The login flow refuses to re-provision a consumed account whose license
    was removed.  This is the explicit way to give it a fresh one.
    """
    account = _get_or_404(db, PreGeneratedAccount, account_id, "Conta")
    if not account.is_used or not account.used_by_profile_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Conta ainda não foi utilizada")
    if db.query(License).filter(License.profile_id == account.used_by_profile_id).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Esta conta já possui licença")

    now = utcnow()
    duration = duration_from_config(account.license_duration_days, thirty_minute=is_thirty_minute_account(account))
    license = new_license(
        account.used_by_profile_id,
        account.license_key,
        pre_generated_license_type(account),
        now,
        duration,
    )
    db.add(license)
    _audit(db, master, "reissue_license", target_profile_id=account.used_by_profile_id, detail=f"username={account.username}")
    db.commit()
    db.refresh(license)
    return license


# ---------------------------------------------------------------------------
# License administration
# ---------------------------------------------------------------------------


def _set_status(db: Session, master: IdentityUser, license_id: int, new_status: str, action: str) -> License:
    license = _get_or_404(db, License, license_id, "Licença")
    license.status = new_status
    _audit(db, master, action, target_profile_id=license.profile_id)
    db.commit()
    db.refresh(license)
    return license


@router.put("/licenses/{license_id}/block", response_model=LicenseRow)
def block_license(
    license_id: int,
    master: IdentityUser = Depends(require_master),
    db: Session = Depends(get_db),
):
    return _set_status(db, master, license_id, "blocked", "block_license")


@router.put("/licenses/{license_id}/unblock", response_model=LicenseRow)
def unblock_license(
    license_id: int,
    master: IdentityUser = Depends(require_master),
    db: Session = Depends(get_db),
):
    """Back to ``active``.  A license past its expiry expires again on the next login."""
    return _set_status(db, master, license_id, "active", "unblock_license")


@router.put("/licenses/{license_id}/renew", response_model=LicenseRow)
def renew_license(
    license_id: int,
    body: RenewLicenseRequest,
    master: IdentityUser = Depends(require_master),
    db: Session = Depends(get_db),
):
    """Reactivate a license with a new expiry counted from now."""
    license = _get_or_404(db, License, license_id, "Licença")
    license.expires_at = utcnow() + duration_from_config(body.duration)
    license.status = "active"
    _audit(db, master, "renew_license", target_profile_id=license.profile_id, detail=f"duration={body.duration}")
    db.commit()
    db.refresh(license)
    return license


@router.delete("/licenses/{license_id}")
def delete_license(
    license_id: int,
    master: IdentityUser = Depends(require_master),
    db: Session = Depends(get_db),
):
    license = _get_or_404(db, License, license_id, "Licença")
    profile_id = license.profile_id
    db.delete(license)
    _audit(db, master, "delete_license", target_profile_id=profile_id)
    db.commit()
    return {"detail": "Licença removida"}


# ---------------------------------------------------------------------------
# Master credentials
# ---------------------------------------------------------------------------


@router.post("/master-credentials", response_model=MasterCredentialRow, status_code=status.HTTP_201_CREATED)
def create_master_credential(
    body: CreateMasterCredentialRequest,
    master: IdentityUser = Depends(require_master),
    db: Session = Depends(get_db),
):
    username = body.username.strip().lower()
    if db.query(MasterCredential).filter(MasterCredential.username == username).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Usuário já existe")

    credential = MasterCredential(
        username=username,
        password_hash=hash_password(body.password),
        full_name=body.full_name,
        is_active=True,
    )
    db.add(credential)
    _audit(db, master, "create_master_credential", detail=f"username={username}")
    db.commit()
    db.refresh(credential)
    return credential


@router.get("/master-credentials", response_model=MasterCredentialListResponse)
def list_master_credentials(
    master: IdentityUser = Depends(require_master),
    db: Session = Depends(get_db),
):
    credentials = db.query(MasterCredential).order_by(MasterCredential.username).all()
    return MasterCredentialListResponse(credentials=credentials)


def _set_active(db: Session, master: IdentityUser, credential_id: int, active: bool) -> MasterCredential:
    credential = _get_or_404(db, MasterCredential, credential_id, "Credencial")
    credential.is_active = active
    _audit(db, master, "activate_master_credential" if active else "deactivate_master_credential",
           detail=f"username={credential.username}")
    db.commit()
    db.refresh(credential)
    return credential


@router.put("/master-credentials/{credential_id}/activate", response_model=MasterCredentialRow)
def activate_master_credential(
    credential_id: int,
    master: IdentityUser = Depends(require_master),
    db: Session = Depends(get_db),
):
    return _set_active(db, master, credential_id, True)


@router.put("/master-credentials/{credential_id}/deactivate", response_model=MasterCredentialRow)
def deactivate_master_credential(
    credential_id: int,
    master: IdentityUser = Depends(require_master),
    db: Session = Depends(get_db),
):
    return _set_active(db, master, credential_id, False)


# ---------------------------------------------------------------------------
# GET /admin/audit-logs  – newest-first audit trail
# ---------------------------------------------------------------------------


@router.get("/audit-logs", response_model=AuditLogListResponse)
def list_audit_logs(
    actions: list[str] | None = Query(None, description="Filter by action name(s) – repeated param"),
    since: datetime | None = Query(None, description="ISO-8601 start of time window"),
    until: datetime | None = Query(None, description="ISO-8601 end of time window"),
    limit: int = Query(200, ge=1, le=1000),
    master: IdentityUser = Depends(require_master),
    db: Session = Depends(get_db),
):
    q = db.query(AuditLog)
    if actions:
        q = q.filter(AuditLog.action.in_(actions))
    if since:
        q = q.filter(AuditLog.created_at >= since)
    if until:
        q = q.filter(AuditLog.created_at <= until)

    rows = q.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit).all()

    result = []
    for row in rows:
        actor = db.query(IdentityUser).filter(IdentityUser.id == row.actor_user_id).first() if row.actor_user_id else None
        target = db.query(Profile).filter(Profile.id == row.target_profile_id).first() if row.target_profile_id else None
        result.append(AuditLogRow(
            id=row.id,
            actor_email=actor.email if actor else None,
            target_username=target.username if target else None,
            action=row.action,
            detail=row.detail,
            request_ip=row.request_ip,
            created_at=row.created_at,
        ))

    return AuditLogListResponse(logs=result)
