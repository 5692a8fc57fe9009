from __future__ import annotations
import secrets
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from monstats.config import get_settings

security = HTTPBearer(auto_error=False)


async def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> None:
    """Guard for maintenance endpoints.

    When no admin token is configured the endpoint is open, which matches the
    historical deployment; main.py warns about it at startup.
    """
    admin_token = get_settings().admin_token
    if not admin_token:
        return

    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    if not secrets.compare_digest(credentials.credentials, admin_token):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid admin token",
        )
