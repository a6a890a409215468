"""
admin_log.py

관리자(Admin) 행위 기록(Audit Log) 모델 정의 파일.

이 파일은 관리자에 의해 수행된 주요 관리 행위
(계정 생성/수정/삭제/복구, 비밀번호 초기화, 역할/권한 토글, 메뉴 변경)를
성공/실패 여부와 함께 DB에 영구적으로 기록하기 위한 로그 테이블을 정의한다.

설계 원칙:
- 실제 데이터 변경과 로그 기록을 분리
- 로그 데이터는 수정/삭제하지 않는 것을 전제로 설계
- actor(행위자)와 target(대상 사용자)을 명확히 구분
- 대상 사용자가 영구 삭제되어도 로그는 남도록 FK는 SET NULL
- context 에는 평문 비밀번호를 절대 기록하지 않음

"""

import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import JSON, Boolean, DateTime, Enum as SAEnum, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.db.base import Base


#  관리자 행위 유형 Enum

class AdminAction(str, Enum):
    CREATE_USER = "CREATE_USER"
    UPDATE_USER = "UPDATE_USER"
    DELETE_USER = "DELETE_USER"
    FORCE_DELETE_USER = "FORCE_DELETE_USER"
    RESTORE_USER = "RESTORE_USER"
    RESET_PASSWORD = "RESET_PASSWORD"
    TOGGLE_ROLE = "TOGGLE_ROLE"
    TOGGLE_PERMISSION = "TOGGLE_PERMISSION"
    UPSERT_MENU = "UPSERT_MENU"
    DELETE_MENU = "DELETE_MENU"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AdminActionLog(Base):
    __tablename__ = "admin_action_logs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    actor_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    target_user_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    action: Mapped[AdminAction] = mapped_column(SAEnum(AdminAction, name="admin_action"), nullable=False)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    context: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    ip: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
