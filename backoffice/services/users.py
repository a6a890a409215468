"""
services/users.py

사용자 계정 수명 주기(Identity Store) 비즈니스 로직 모음.

이 파일은 관리자 백오피스에서 사용하는 계정 생성, 수정,
Soft Delete / 영구 삭제, 복구, 비밀번호 초기화를 담당한다.
라우터는 이 파일의 함수를 호출하고 결과를 응답/감사 로그로 변환한다.

주요 기능:
- 계정 생성 (임시 비밀번호 발급, 즉시 이메일 인증 처리)
- 계정 정보 수정 (username / email 소문자 정규화 + 중복 검사)
- 계정 삭제 (Soft Delete 또는 영구 삭제)
- 계정 복구
- 비밀번호 초기화
- 계정 현황 집계 (전체 / 활성 / 비활성 / 삭제)

설계 원칙:
- HTTP / FastAPI 의존성 없음
- 모든 조회는 Scope(ACTIVE_ONLY / INCLUDING_DELETED)를 명시
- 실패는 도메인 예외(ValidationError / NotFoundError)로 전달
- 트랜잭션 커밋은 라우터에서 수행
- 평문 비밀번호는 반환값으로 한 번만 전달하고 어디에도 기록하지 않음

관련 파일:
- backoffice.models.user        : User / Role / Permission 모델
- backoffice.core.security      : 비밀번호 해시 / 임시 비밀번호 생성
- backoffice.routers.admin      : 관리자 계정 관리 API

"""

import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from backoffice.core.exceptions import NotFoundError, ValidationError
from backoffice.core.security import generate_password, get_password_hash
from backoffice.models.user import User


class Scope(str, Enum):
    ACTIVE_ONLY = "ACTIVE_ONLY"
    INCLUDING_DELETED = "INCLUDING_DELETED"
    DELETED_ONLY = "DELETED_ONLY"


@dataclass
class UserSnapshot:
    id: uuid.UUID
    name: str
    username: str
    email: str
    deleted_at: datetime | None = None
    forced: bool = False

    @classmethod
    def of(cls, user: User, *, forced: bool = False) -> "UserSnapshot":
        return cls(
            id=user.id,
            name=user.name,
            username=user.username,
            email=user.email,
            deleted_at=user.deleted_at,
            forced=forced,
        )

    def context(self) -> dict:
        return {
            "id": str(self.id),
            "name": self.name,
            "username": self.username,
            "email": self.email,
            "forced": self.forced,
        }


@dataclass
class CreatedUser:
    user: User
    # 평문 비밀번호: 응답으로 한 번만 전달
    password: str = field(repr=False)


@dataclass
class UserChange:
    user: User
    before: UserSnapshot
    after: UserSnapshot


@dataclass
class UserCounts:
    all: int
    active: int
    inactive: int
    deleted: int


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_identity(value: str) -> str:
    return value.strip().lower()


def scoped_users(scope: Scope):
    stmt = select(User)
    if scope == Scope.ACTIVE_ONLY:
        stmt = stmt.where(User.deleted_at.is_(None))
    elif scope == Scope.DELETED_ONLY:
        stmt = stmt.where(User.deleted_at.is_not(None))
    return stmt


def get_user(db: Session, user_id: uuid.UUID, *, scope: Scope) -> User | None:
    return db.scalar(scoped_users(scope).where(User.id == user_id))


def require_user(db: Session, user_id: uuid.UUID, *, scope: Scope) -> User:
    user = get_user(db, user_id, scope=scope)
    if user is None:
        raise NotFoundError("User not found", id=str(user_id), scope=scope.value)
    return user


def get_user_by_username(db: Session, username: str, *, scope: Scope) -> User | None:
    return db.scalar(scoped_users(scope).where(User.username == normalize_identity(username)))


"""
username / email 중복 검사

- 대소문자 무시 비교
- Soft Delete된 계정도 값을 점유하므로 INCLUDING_DELETED 범위에서 검사
- exclude_id: 수정 시 자기 자신은 제외
- 애플리케이션 수준 검사는 참고용이며 최종 보장은 DB UNIQUE 제약

"""

def _ensure_unique(db: Session, *, username: str, email: str, exclude_id: uuid.UUID | None = None) -> None:
    for column, value in (("username", username), ("email", email)):
        stmt = scoped_users(Scope.INCLUDING_DELETED).where(func.lower(getattr(User, column)) == value)
        if exclude_id is not None:
            stmt = stmt.where(User.id != exclude_id)
        if db.scalar(stmt) is not None:
            raise ValidationError(f"{column} has already been taken", field=column, **{column: value})


def _validate_fields(name: str, username: str, email: str) -> None:
    for column, value in (("name", name), ("username", username), ("email", email)):
        if not value or not value.strip():
            raise ValidationError(f"{column} is required", field=column)


# UNIQUE 제약 위반(동시 요청 경쟁)을 ValidationError로 변환
# 변경 사항은 SAVEPOINT 안에서 적용해야 실패 시 바깥 트랜잭션이 유지됨
@contextmanager
def _unique_savepoint(db: Session, **context):
    try:
        with db.begin_nested():
            yield
    except IntegrityError as e:
        raise ValidationError("username or email has already been taken", **context) from e


"""
계정 생성

- username / email 소문자 정규화 후 중복 검사
- 임시 비밀번호 생성 후 해시만 저장
- 관리자 생성 계정은 인증 메일 절차 없이 즉시 인증 처리
- 기본 역할/권한은 부여하지 않음 (토글로 명시적으로 부여)

"""

def create_user(db: Session, *, name: str, username: str, email: str) -> CreatedUser:
    _validate_fields(name, username, email)
    username = normalize_identity(username)
    email = normalize_identity(email)

    _ensure_unique(db, username=username, email=email)

    password = generate_password()
    user = User(
        name=name.strip(),
        username=username,
        email=email,
        password_hash=get_password_hash(password),
        email_verified_at=_utcnow(),
    )
    with _unique_savepoint(db, username=username, email=email):
        db.add(user)
    return CreatedUser(user=user, password=password)


def update_user(db: Session, user_id: uuid.UUID, *, name: str, username: str, email: str) -> UserChange:
    _validate_fields(name, username, email)
    user = require_user(db, user_id, scope=Scope.ACTIVE_ONLY)

    username = normalize_identity(username)
    email = normalize_identity(email)
    _ensure_unique(db, username=username, email=email, exclude_id=user.id)

    before = UserSnapshot.of(user)
    with _unique_savepoint(db, id=str(user.id), username=username, email=email):
        user.name = name.strip()
        user.username = username
        user.email = email

    return UserChange(user=user, before=before, after=UserSnapshot.of(user))


"""
계정 삭제

- Soft Delete 된 계정도 대상 (INCLUDING_DELETED)
- force=False : deleted_at 설정, 역할/권한 연관은 그대로 유지
                (이미 삭제된 계정이면 최초 삭제 시각 유지)
- force=True  : 역할/권한 연관 삭제 후 레코드 영구 삭제
- 반환값은 삭제 전 스냅샷 (감사 로그 context 용)

"""

def delete_user(db: Session, user_id: uuid.UUID, *, force: bool = False) -> UserSnapshot:
    user = require_user(db, user_id, scope=Scope.INCLUDING_DELETED)
    snapshot = UserSnapshot.of(user, forced=force)

    if force:
        user.roles.clear()
        user.permissions.clear()
        db.delete(user)
        db.flush()
        return snapshot

    if user.deleted_at is None:
        user.deleted_at = _utcnow()
        db.flush()
    snapshot.deleted_at = user.deleted_at
    return snapshot


def restore_user(db: Session, user_id: uuid.UUID) -> UserSnapshot:
    user = require_user(db, user_id, scope=Scope.INCLUDING_DELETED)
    user.deleted_at = None
    db.flush()
    return UserSnapshot.of(user)


def reset_password(db: Session, user_id: uuid.UUID) -> str:
    user = require_user(db, user_id, scope=Scope.ACTIVE_ONLY)
    password = generate_password()
    user.password_hash = get_password_hash(password)
    db.flush()
    return password


# 목록 화면 상단 집계: 전체(삭제 포함) / 인증 / 미인증 / 삭제
def count_users(db: Session) -> UserCounts:
    def _count(stmt) -> int:
        return db.scalar(select(func.count()).select_from(stmt.subquery())) or 0

    everyone = scoped_users(Scope.INCLUDING_DELETED)
    return UserCounts(
        all=_count(everyone),
        active=_count(everyone.where(User.email_verified_at.is_not(None))),
        inactive=_count(everyone.where(User.email_verified_at.is_(None))),
        deleted=_count(scoped_users(Scope.DELETED_ONLY)),
    )


def list_users(db: Session, *, scope: Scope) -> list[User]:
    stmt = (
        scoped_users(scope)
        .options(selectinload(User.roles), selectinload(User.permissions))
        .order_by(User.username)
    )
    return list(db.scalars(stmt).all())
