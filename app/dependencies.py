from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import NotFound
from app.models import User, get_db

security = HTTPBearer(auto_error=False)


def get_current_principal_optional(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> str | None:
    """Subject of a valid access token issued by the identity provider."""
    if not credentials:
        return None
    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except JWTError:
        return None
    sub = payload.get("sub")
    if sub is None or payload.get("type") not in {None, "access"}:
        return None
    return str(sub)


def get_current_principal(
    principal: Annotated[str | None, Depends(get_current_principal_optional)],
) -> str:
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return principal


def get_current_user(
    principal: Annotated[str, Depends(get_current_principal)],
    db: Annotated[Session, Depends(get_db)],
) -> User:
    user = db.query(User).filter(User.external_id == principal).first()
    if user is None:
        raise NotFound("User not found")
    return user
