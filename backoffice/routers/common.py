"""
routers/common.py

관리자 라우터 공통 처리.

- 도메인 예외 → HTTPException 변환
- 감사 로그(AdminActionLog) 기록 시 요청 IP / User-Agent 첨부
- 커밋 실패(SQLAlchemyError)는 PersistenceError 로 변환
- 실패 시 트랜잭션 롤백 후 실패 로그만 따로 커밋

"""

import logging

from fastapi import HTTPException, Request, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backoffice.core.exceptions import BackofficeError, NotFoundError, PersistenceError, ValidationError
from backoffice.models.admin_log import AdminAction
from backoffice.models.user import User
from backoffice.services.admin_log import write_admin_log

logger = logging.getLogger(__name__)


def to_http_exception(error: BackofficeError) -> HTTPException:
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=error.message)
    if isinstance(error, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error.message)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Database error: {type(error.__cause__ or error).__name__}",
    )


def audit(
    db: Session,
    request: Request,
    *,
    actor: User,
    action: AdminAction,
    success: bool = True,
    target_user_id=None,
    context: dict | None = None,
) -> None:
    write_admin_log(
        db,
        actor_id=actor.id,
        action=action,
        success=success,
        target_user_id=target_user_id,
        context=context,
        ip=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


# 커밋 단계의 DB 오류 (lock, 제약 조건 등)를 도메인 예외로 변환
def commit(db: Session, **context) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("commit failed", extra={"context": {"cause": type(e).__name__, **context}})
        raise PersistenceError("Could not save changes", cause=type(e).__name__, **context) from e


"""
실패 처리

- 진행 중이던 변경은 모두 롤백
- 대상이 존재하지 않을 수 있으므로 target_user_id 는 비우고 context 에만 id 기록
- 실패 로그는 별도로 커밋한 뒤 HTTPException 반환

"""

def fail(db: Session, request: Request, *, actor: User, action: AdminAction, error: BackofficeError) -> HTTPException:
    db.rollback()
    audit(
        db,
        request,
        actor=actor,
        action=action,
        success=False,
        context={"error": error.message, **error.context},
    )
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("could not record failed admin action", extra={"context": {"action": action.value}})
    return to_http_exception(error)
