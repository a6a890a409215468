"""
auth.py

인증(Authentication) 및 현재 사용자 정보 API 모음.

주요 기능:
- 로그인 및 Access Token 발급
- 현재 사용자 정보 조회 (직접 부여된 역할/권한 + 유효 권한)
- 현재 사용자용 내비게이션 메뉴 조회 (활성 메뉴 + current 표시)

설계 원칙:
- Access Token은 Authorization Header(Bearer)로 전달
- Soft Delete 된 계정 / 이메일 미인증 계정은 로그인 불가

관련 파일:
- backoffice.core.security        : 비밀번호 검증 / JWT 생성
- backoffice.core.deps            : 인증 의존성(get_current_user)
- backoffice.services.menus       : 메뉴 트리 / 활성 노드 판정

"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from backoffice.core.deps import get_db, get_current_user
from backoffice.core.exceptions import MenuConfigurationError
from backoffice.core.security import create_access_token, verify_password
from backoffice.models.user import User
from backoffice.routers.common import to_http_exception
from backoffice.schemas.auth import LoginRequest, MeResponse, TokenResponse
from backoffice.schemas.menu import MenuNodeResponse
from backoffice.services.authz import effective_permissions
from backoffice.services.menus import list_menu_tree, mark_current
from backoffice.services.users import Scope, get_user_by_username

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    user = get_user_by_username(db, data.username, scope=Scope.ACTIVE_ONLY)
    if not user or not verify_password(data.password, user.password_hash):
        logger.warning("failed login", extra={"context": {"username": data.username.lower()}})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    if not user.is_verified:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Email not verified")

    return {"access_token": create_access_token(str(user.id))}


@router.get("/me", response_model=MeResponse)
def me(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return {
        "id": current_user.id,
        "name": current_user.name,
        "username": current_user.username,
        "email": current_user.email,
        "roles": [r.name for r in current_user.roles],
        "permissions": [p.name for p in current_user.permissions],
        "effective_permissions": sorted(effective_permissions(db, current_user)),
    }


# 내비게이션 렌더링용: 활성 메뉴만, route 와 일치하는 노드와 그 상위 노드는 current=True
@router.get("/menu", response_model=List[MenuNodeResponse])
def navigation(
    route: Optional[str] = None,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    try:
        forest = list_menu_tree(db, active_only=True)
    except MenuConfigurationError as e:
        raise to_http_exception(e)
    return mark_current(forest, route)
