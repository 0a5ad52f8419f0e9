"""登入：設定檔中的管理員帳密換取 Bearer JWT（開發與維運用）；/me 回傳目前身分與權限。"""
import secrets

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from agentcare import schemas
from agentcare.auth import Principal, create_access_token, get_current_principal
from agentcare.config import settings
from agentcare.errors import UnauthorizedError

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


class MeResponse(BaseModel):
    subject: str
    permissions: list[str]
    internal: bool = False


@router.post("/login", response_model=schemas.ApiResponse[schemas.TokenRead])
async def login(body: schemas.LoginRequest):
    """admin_password 未設定時停用登入；帳密錯誤一律 401。"""
    if not settings.admin_password:
        raise UnauthorizedError("Login is disabled")
    username_ok = secrets.compare_digest(body.username.strip(), settings.admin_username)
    password_ok = secrets.compare_digest(body.password, settings.admin_password)
    if not (username_ok and password_ok):
        raise UnauthorizedError("Invalid username or password")
    token = create_access_token(settings.admin_username, ["*"])
    return schemas.ok(schemas.TokenRead(access_token=token, expires_in=settings.jwt_expire_minutes * 60))


@router.get("/me", response_model=schemas.ApiResponse[MeResponse])
async def me(principal: Principal = Depends(get_current_principal)):
    return schemas.ok(MeResponse(subject=principal.subject, permissions=principal.permissions, internal=principal.internal))
