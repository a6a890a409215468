"""
user.py

사용자(User), 역할(Role), 권한(Permission) 모델 및 연관 테이블 정의 파일.

이 파일은 관리자 백오피스 계정의 기본 정보와
사용자 ↔ 역할 / 사용자 ↔ 권한 / 역할 ↔ 권한 연관 관계,
탈퇴 상태(Soft Delete)를 관리한다.

모든 인증, 권한 토글, 계정 관리 기능의 기준이 되는 핵심 모델이다.

"""

import uuid
import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Table, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.db.base import Base, TimestampMixin


"""
연관 테이블

- 쌍(pair)의 존재 여부만이 상태 (부여자/부여 시각 등 메타데이터 없음)
- 복합 기본 키로 같은 쌍이 두 번 저장되지 않도록 보장
- 사용자/역할/권한이 영구 삭제되면 연관 행도 함께 삭제(CASCADE)

"""

user_role = Table(
    "user_role",
    Base.metadata,
    Column("user_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)

user_permission = Table(
    "user_permission",
    Base.metadata,
    Column("user_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("permission_id", Integer, ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True),
)

# 역할에 묶인 권한 (이 서비스에서는 읽기 전용)
role_permission = Table(
    "role_permission",
    Base.metadata,
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    Column("permission_id", Integer, ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True),
)


class Permission(TimestampMixin, Base):
    __tablename__ = "permissions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)


class Role(TimestampMixin, Base):
    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)

    permissions: Mapped[list[Permission]] = relationship(secondary=role_permission, order_by=Permission.name)


"""
사용자(User) 모델

- username / email 은 소문자로 저장되는 고유 식별자
  (Soft Delete된 계정도 영구 삭제 전까지 값을 점유)
- email_verified_at 이 NULL 이면 미인증(비활성) 계정
- deleted_at 이 NULL 이 아니면 Soft Delete된 계정
- roles / permissions 는 직접 부여된 항목만 포함

"""

class User(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    username: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    email_verified_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    deleted_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, index=True)

    roles: Mapped[list[Role]] = relationship(secondary=user_role, order_by=Role.name)
    permissions: Mapped[list[Permission]] = relationship(secondary=user_permission, order_by=Permission.name)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def is_verified(self) -> bool:
        return self.email_verified_at is not None
