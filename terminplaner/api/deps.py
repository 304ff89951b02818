from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.database import get_db
from ..core.exceptions import (
    TerminplanerError, NotFoundError, ForbiddenError, BadRequestError, ConflictError
)
from ..services import UserService
from ..services.auth_service import verify_session_token

ERROR_STATUS = {
    NotFoundError: 404,
    ForbiddenError: 403,
    BadRequestError: 400,
    ConflictError: 409,
}


def http_error(e: TerminplanerError) -> HTTPException:
    """HTTPException with the status code of a service error"""
    for error_class, status_code in ERROR_STATUS.items():
        if isinstance(e, error_class):
            return HTTPException(status_code=status_code, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


def _get_token(request: Request):
    token = request.cookies.get(settings.session_cookie_name)
    if token:
        return token
    authorization = request.headers.get("Authorization", "")
    if authorization.lower().startswith("bearer "):
        return authorization[7:].strip()
    return None


async def require_auth(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    token = _get_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    payload = verify_session_token(token)
    if not payload or not payload.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid session")

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid session")

    user_service = UserService(db)
    user = await user_service.get_user_by_id(user_id)
    if not user:
        raise HTTPException(status_code=401, detail="User no longer exists")
    return user


async def require_admin(user=Depends(require_auth)):
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Administrator access required")
    return user
