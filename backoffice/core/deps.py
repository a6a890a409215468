from typing import Generator
import uuid

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
from sqlalchemy.orm import Session

from backoffice.core.config import settings
from backoffice.core.security import decode_access_token
from backoffice.db.session import SessionLocal
from backoffice.models.user import User
from backoffice.services.authz import has_role_named
from backoffice.services.users import Scope, get_user

# Swagger Authorize에서 "Bearer 토큰" 입력받는 스키마
bearer_scheme = HTTPBearer(auto_error=False)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    cred: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    if cred is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        # User.id가 UUID라서 변환
        user_id = uuid.UUID(decode_access_token(cred.credentials))
    except (JWTError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # 삭제된 계정의 토큰은 더 이상 유효하지 않음
    user = get_user(db, user_id, scope=Scope.ACTIVE_ONLY)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user


def get_current_superuser(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> User:
    if not has_role_named(db, current_user, settings.SUPERUSER_ROLE):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Requires role {settings.SUPERUSER_ROLE}",
        )
    return current_user
