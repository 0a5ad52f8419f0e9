"""Bearer JWT 與內部 API key 驗證，以及 resource:action 權限檢查"""
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional
from fastapi import Depends, Header
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from agentcare.config import settings
from agentcare.errors import ForbiddenError, UnauthorizedError

security = HTTPBearer(auto_error=False)


@dataclass
class Principal:
    subject: str
    permissions: List[str] = field(default_factory=list)
    internal: bool = False


def create_access_token(subject: str, permissions: List[str], expires_minutes: Optional[int] = None) -> str:
    expires = datetime.utcnow() + timedelta(minutes=expires_minutes or settings.jwt_expire_minutes)
    payload = {"sub": subject, "permissions": list(permissions), "exp": expires}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Principal:
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise UnauthorizedError("Invalid or expired token")
    subject = payload.get("sub")
    if not subject:
        raise UnauthorizedError("Invalid token structure")
    permissions = payload.get("permissions") or []
    if not isinstance(permissions, list):
        raise UnauthorizedError("Invalid token structure")
    return Principal(subject=str(subject), permissions=[str(p) for p in permissions])


def has_permission(granted: List[str], required: str) -> bool:
    """``*`` 全部；``zones:*`` 同資源全部動作；否則需完全相同"""
    resource = required.split(":", 1)[0]
    for perm in granted:
        if perm == "*" or perm == required or perm == f"{resource}:*":
            return True
    return False


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
) -> Principal:
    if x_api_key is not None:
        if settings.internal_api_key and secrets.compare_digest(x_api_key, settings.internal_api_key):
            return Principal(subject="internal-service", permissions=["*"], internal=True)
        raise UnauthorizedError("Invalid API key")
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Authentication required")
    return decode_access_token(credentials.credentials)


def require_permission(permission: str):
    """FastAPI dependency factory: ``Depends(require_permission("zones:read"))``"""

    async def checker(principal: Principal = Depends(get_current_principal)) -> Principal:
        if not has_permission(principal.permissions, permission):
            raise ForbiddenError(f"Missing permission: {permission}")
        return principal

    return checker
