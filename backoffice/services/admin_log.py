"""
services/admin_log.py

관리자 행위 로그 기록 서비스.

이 파일은 관리자(Admin)가 수행한 주요 행위를
AdminActionLog 테이블과 애플리케이션 로그(logging)에 함께 기록한다.

라우터에서 호출되며,
로그 기록 자체는 DB에만 영향을 주고
비즈니스 흐름에는 개입하지 않는다.

설계 원칙:
- 성공/실패를 모두 기록 (실패는 logger.error, 성공은 logger.info)
- 로그 데이터는 수정/삭제하지 않는 것을 전제로 설계
- context 에 평문 비밀번호가 섞이지 않도록 password 키는 제거

"""

import logging

from sqlalchemy import desc, select
from sqlalchemy.orm import Session, aliased

from backoffice.models.admin_log import AdminAction, AdminActionLog
from backoffice.models.user import User

logger = logging.getLogger(__name__)

_REDACTED_KEYS = {"password", "password_hash"}

_MESSAGES = {
    AdminAction.CREATE_USER: "creating user",
    AdminAction.UPDATE_USER: "updating user",
    AdminAction.DELETE_USER: "deleting user",
    AdminAction.FORCE_DELETE_USER: "deleting user",
    AdminAction.RESTORE_USER: "restoring user",
    AdminAction.RESET_PASSWORD: "updating password",
    AdminAction.TOGGLE_ROLE: "toggling role",
    AdminAction.TOGGLE_PERMISSION: "toggling permission",
    AdminAction.UPSERT_MENU: "saving menu",
    AdminAction.DELETE_MENU: "deleting menu",
}


def _clean(context: dict | None) -> dict:
    return {k: v for k, v in (context or {}).items() if k not in _REDACTED_KEYS}


"""
관리자 행위 로그 기록 함수

- actor_id       : 행위를 수행한 관리자 ID
- action         : 수행된 관리자 행위 유형
- success        : 성공 여부
- target_user_id : 행위 대상 사용자 ID (선택)
- context        : 감사용 부가 정보 (id / name / username / email / forced 등)
- ip             : 요청 IP 주소 (선택)
- user_agent     : 요청 User-Agent (선택)

NOTE:
- db.commit()은 호출 측(라우터)에서 수행

"""
def write_admin_log(
    db: Session,
    *,
    actor_id,
    action: AdminAction,
    success: bool = True,
    target_user_id=None,
    context: dict | None = None,
    ip=None,
    user_agent=None,
) -> AdminActionLog:
    context = _clean(context)

    if success:
        logger.info(_MESSAGES[action], extra={"context": context})
    else:
        logger.error(_MESSAGES[action], extra={"context": context})

    log = AdminActionLog(
        actor_id=actor_id,
        action=action,
        success=success,
        target_user_id=target_user_id,
        context=context,
        ip=ip,
        user_agent=user_agent,
    )
    db.add(log)
    return log


def recent_logs(db: Session, *, limit: int = 50):
    Actor = aliased(User)
    Target = aliased(User)

    return db.execute(
        select(AdminActionLog, Actor, Target)
        .outerjoin(Actor, Actor.id == AdminActionLog.actor_id)
        .outerjoin(Target, Target.id == AdminActionLog.target_user_id)
        .order_by(desc(AdminActionLog.created_at))
        .limit(limit)
    ).all()
