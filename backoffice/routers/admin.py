"""
admin.py

관리자 전용 계정 / 권한 관리 API 모음.

이 파일은 superuser 역할을 가진 관리자만 접근할 수 있는
계정 관리 기능을 HTTP 로 노출한다.
비즈니스 규칙은 services 계층에 위임하고,
여기서는 요청/응답 변환, 커밋, 감사 로그 기록만 담당한다.

주요 기능:
- 계정 목록 조회 (Scope + 현황 집계)
- 계정 생성 (임시 비밀번호 1회 노출)
- 계정 수정 / 삭제(Soft, 영구) / 복구 / 비밀번호 초기화
- 역할 토글 / 권한 토글
- 관리자 활동 로그 조회

관련 파일:
- backoffice.services.users      : 계정 수명 주기
- backoffice.services.authz      : 토글 프로토콜
- backoffice.services.admin_log  : 감사 로그

"""

import uuid
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from backoffice.core.deps import get_db, get_current_superuser
from backoffice.core.exceptions import BackofficeError, NotFoundError
from backoffice.models.admin_log import AdminAction
from backoffice.models.user import User
from backoffice.routers.common import audit, commit, fail, to_http_exception
from backoffice.schemas.user import (
    CreatedUserResponse,
    MessageResponse,
    PasswordResetResponse,
    TogglePermissionRequest,
    ToggleResponse,
    ToggleRoleRequest,
    UserCreate,
    UserListResponse,
    UserResponse,
    UserUpdate,
)
from backoffice.services import authz, users
from backoffice.services.admin_log import recent_logs
from backoffice.services.users import Scope


router = APIRouter(prefix="/admin", tags=["admin"])

_SCOPES = {
    "active": Scope.ACTIVE_ONLY,
    "all": Scope.INCLUDING_DELETED,
    "deleted": Scope.DELETED_ONLY,
}


# 계정 목록 조회 (검색/페이지네이션 없음)
@router.get("/users", response_model=UserListResponse)
def list_users(
    scope: Literal["active", "all", "deleted"] = "all",
    db: Session = Depends(get_db),
    _: User = Depends(get_current_superuser),
):
    return {
        "data": users.list_users(db, scope=_SCOPES[scope]),
        "counts": users.count_users(db),
        "roles": authz.list_roles(db),
        "permissions": authz.list_permissions(db),
    }


@router.post("/users", response_model=CreatedUserResponse)
def create_user(
    data: UserCreate,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_superuser),
):
    try:
        created = users.create_user(db, name=data.name, username=data.username, email=data.email)
        audit(
            db,
            request,
            actor=admin,
            action=AdminAction.CREATE_USER,
            target_user_id=created.user.id,
            context={"id": str(created.user.id)},
        )
        commit(db, id=str(created.user.id))
    except BackofficeError as e:
        raise fail(db, request, actor=admin, action=AdminAction.CREATE_USER, error=e)

    return {
        "message": f'user has been created with default password "{created.password}"',
        "id": created.user.id,
        "password": created.password,
    }


@router.get("/users/{user_id}", response_model=UserResponse)
def get_user(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_superuser),
):
    try:
        return users.require_user(db, user_id, scope=Scope.INCLUDING_DELETED)
    except NotFoundError as e:
        raise to_http_exception(e)


@router.put("/users/{user_id}", response_model=MessageResponse)
def update_user(
    user_id: uuid.UUID,
    data: UserUpdate,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_superuser),
):
    try:
        change = users.update_user(db, user_id, name=data.name, username=data.username, email=data.email)
        audit(
            db,
            request,
            actor=admin,
            action=AdminAction.UPDATE_USER,
            target_user_id=change.user.id,
            context={"id": str(change.user.id), "before": change.before.context(), "after": change.after.context()},
        )
        commit(db, id=str(change.user.id))
    except BackofficeError as e:
        raise fail(db, request, actor=admin, action=AdminAction.UPDATE_USER, error=e)

    return {"message": "user has been updated", "data": change.after.context()}


# force=true 이면 영구 삭제 (역할/권한 연관도 함께 제거)
@router.delete("/users/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: uuid.UUID,
    request: Request,
    force: bool = False,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_superuser),
):
    action = AdminAction.FORCE_DELETE_USER if force else AdminAction.DELETE_USER

    # 자기 자신 삭제 금지
    if user_id == admin.id:
        raise HTTPException(status_code=400, detail="Cannot delete yourself")

    try:
        snapshot = users.delete_user(db, user_id, force=force)
        audit(
            db,
            request,
            actor=admin,
            action=action,
            target_user_id=None if force else snapshot.id,
            context=snapshot.context(),
        )
        commit(db, **snapshot.context())
    except BackofficeError as e:
        raise fail(db, request, actor=admin, action=action, error=e)

    return {"message": "user has been deleted", "data": snapshot.context()}


@router.post("/users/{user_id}/restore", response_model=MessageResponse)
def restore_user(
    user_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_superuser),
):
    try:
        snapshot = users.restore_user(db, user_id)
        audit(
            db,
            request,
            actor=admin,
            action=AdminAction.RESTORE_USER,
            target_user_id=snapshot.id,
            context={"id": str(snapshot.id)},
        )
        commit(db, id=str(snapshot.id))
    except BackofficeError as e:
        raise fail(db, request, actor=admin, action=AdminAction.RESTORE_USER, error=e)

    return {"message": "user has been restored", "data": snapshot.context()}


@router.post("/users/{user_id}/reset-password", response_model=PasswordResetResponse)
def reset_password(
    user_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_superuser),
):
    try:
        password = users.reset_password(db, user_id)
        audit(
            db,
            request,
            actor=admin,
            action=AdminAction.RESET_PASSWORD,
            target_user_id=user_id,
            context={"id": str(user_id)},
        )
        commit(db, id=str(user_id))
    except BackofficeError as e:
        raise fail(db, request, actor=admin, action=AdminAction.RESET_PASSWORD, error=e)

    return {
        "text": f'password successfully replaced with "{password}"',
        "password": password,
    }


@router.post("/users/toggle-role", response_model=ToggleResponse)
def toggle_role(
    data: ToggleRoleRequest,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_superuser),
):
    try:
        result = authz.toggle_role(db, data.user_id, data.role_id)
        audit(
            db,
            request,
            actor=admin,
            action=AdminAction.TOGGLE_ROLE,
            target_user_id=result.user_id,
            context=result.context(),
        )
        commit(db, **result.context())
    except BackofficeError as e:
        raise fail(db, request, actor=admin, action=AdminAction.TOGGLE_ROLE, error=e)

    return {"text": "role updated", "outcome": result.outcome.value}


@router.post("/users/toggle-permission", response_model=ToggleResponse)
def toggle_permission(
    data: TogglePermissionRequest,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_superuser),
):
    try:
        result = authz.toggle_permission(db, data.user_id, data.permission_id)
        audit(
            db,
            request,
            actor=admin,
            action=AdminAction.TOGGLE_PERMISSION,
            target_user_id=result.user_id,
            context=result.context(),
        )
        commit(db, **result.context())
    except BackofficeError as e:
        raise fail(db, request, actor=admin, action=AdminAction.TOGGLE_PERMISSION, error=e)

    return {"text": "permission updated", "outcome": result.outcome.value}


# 관리자 활동 로그 조회 엔드포인트
@router.get("/logs")
def list_admin_logs(
    limit: int = 50,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_superuser),
):
    limit = max(1, min(limit, 200))
    rows = recent_logs(db, limit=limit)

    result = []
    for log, actor, target in rows:
        result.append(
            {
                "id": str(log.id),
                "created_at": log.created_at.isoformat(),
                "action": log.action.value,
                "success": log.success,
                "context": log.context,
                "actor": (
                    {"id": str(actor.id), "username": actor.username, "name": actor.name}
                    if actor
                    else None
                ),
                "target": (
                    {"id": str(target.id), "username": target.username, "name": target.name}
                    if target
                    else None
                ),
            }
        )
    return {
        "data": result,
        "meta": {
            "limit": limit,
            "count": len(result),
        },
    }
