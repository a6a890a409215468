"""
base.py

SQLAlchemy ORM Base 정의 파일.

모든 모델(User, Role, Permission, Menu, AdminActionLog)은
이 Base를 기준으로 테이블 메타데이터가 관리되며,
Alembic 마이그레이션 또한 이 Base를 기준으로 동작한다.

공통 컬럼(created_at / updated_at)은 TimestampMixin으로 제공한다.

관련 파일:
- backoffice.models.*            : 모든 ORM 모델
- alembic/env.py                 : 마이그레이션 메타데이터 로드

"""

import datetime

from sqlalchemy import DateTime, func
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

# 모든 ORM 모델이 상속받는 Base 클래스
Base = declarative_base()


class TimestampMixin:
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
