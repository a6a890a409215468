"""
services/authz.py

사용자 ↔ 역할(Role) / 사용자 ↔ 권한(Permission) 연관 관리 서비스.

핵심은 "토글(toggle)" 연산이다.
(사용자, 역할|권한) 쌍이 이미 존재하면 제거(REVOKED)하고,
없으면 추가(GRANTED)한다.

역할 토글과 권한 토글은 같은 알고리즘을 공유하지만
서로 다른 연관 테이블을 대상으로 하며, 대상은 Grantable 로만 구분한다.
역할을 부여해도 역할에 묶인 권한이 user_permission 에 복사되지는 않는다.
역할 묶음 권한은 effective_permissions() 에서 조회 시점에만 합산한다.

동시성:
- 쌍 단위 DELETE → (없으면) INSERT 를 SAVEPOINT 안에서 수행
- 동시에 두 요청이 모두 "없음"을 보고 INSERT 하면
  복합 기본 키 제약으로 한쪽이 IntegrityError 를 받음
- 진 쪽은 SAVEPOINT 를 롤백하고 다시 시도하며, 이번에는 제거 경로를 탄다
- 재시도 상한(TOGGLE_MAX_ATTEMPTS)을 넘기면 PersistenceError

관련 파일:
- backoffice.models.user        : 연관 테이블 정의
- backoffice.services.users     : 사용자 조회 Scope
- backoffice.routers.admin      : 토글 API

"""

import logging
import uuid
from dataclasses import dataclass
from enum import Enum

from sqlalchemy import Table, delete, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backoffice.core.config import settings
from backoffice.core.exceptions import NotFoundError, PersistenceError
from backoffice.models.user import Permission, Role, User, role_permission, user_permission, user_role
from backoffice.services.users import Scope, require_user

logger = logging.getLogger(__name__)


class Grantable(str, Enum):
    ROLE = "ROLE"
    PERMISSION = "PERMISSION"


class ToggleOutcome(str, Enum):
    GRANTED = "granted"
    REVOKED = "revoked"


@dataclass(frozen=True)
class _Association:
    model: type
    table: Table
    column: str
    relation: str


_ASSOCIATIONS = {
    Grantable.ROLE: _Association(Role, user_role, "role_id", "roles"),
    Grantable.PERMISSION: _Association(Permission, user_permission, "permission_id", "permissions"),
}


@dataclass
class ToggleResult:
    kind: Grantable
    outcome: ToggleOutcome
    user_id: uuid.UUID
    grantable_id: int
    grantable_name: str
    success: bool = True

    def context(self) -> dict:
        return {
            "id": str(self.user_id),
            self.kind.value.lower(): self.grantable_name,
            "outcome": self.outcome.value,
        }


def _pair_filter(assoc: _Association, user_id: uuid.UUID, grantable_id: int):
    return (
        assoc.table.c.user_id == user_id,
        assoc.table.c[assoc.column] == grantable_id,
    )


def require_grantable(db: Session, kind: Grantable, grantable_id: int):
    grantable = db.get(_ASSOCIATIONS[kind].model, grantable_id)
    if grantable is None:
        raise NotFoundError(f"{kind.value.capitalize()} not found", **{kind.value.lower() + "_id": grantable_id})
    return grantable


def holds(db: Session, kind: Grantable, user_id: uuid.UUID, grantable_id: int) -> bool:
    assoc = _ASSOCIATIONS[kind]
    stmt = select(assoc.table.c.user_id).where(*_pair_filter(assoc, user_id, grantable_id))
    return db.execute(stmt).first() is not None


"""
토글 연산

1) 사용자 / 대상(역할|권한) 존재 확인, 없으면 변경 없이 NotFoundError
2) SAVEPOINT 안에서 쌍 DELETE, 삭제된 행이 있으면 REVOKED
3) 삭제된 행이 없으면 INSERT 후 GRANTED
4) INSERT 가 키 충돌이면 SAVEPOINT 롤백 후 재시도

NOTE:
- db.commit()은 호출 측(라우터)에서 수행
- scope: Soft Delete 된 사용자까지 허용할지 호출 측에서 명시

"""

def toggle(
    db: Session,
    kind: Grantable,
    user_id: uuid.UUID,
    grantable_id: int,
    *,
    scope: Scope = Scope.ACTIVE_ONLY,
    max_attempts: int | None = None,
) -> ToggleResult:
    assoc = _ASSOCIATIONS[kind]
    user = require_user(db, user_id, scope=scope)
    grantable = require_grantable(db, kind, grantable_id)

    attempts = max_attempts or settings.TOGGLE_MAX_ATTEMPTS
    for attempt in range(1, attempts + 1):
        try:
            with db.begin_nested():
                removed = db.execute(delete(assoc.table).where(*_pair_filter(assoc, user.id, grantable.id))).rowcount
                if removed:
                    outcome = ToggleOutcome.REVOKED
                else:
                    db.execute(insert(assoc.table).values({"user_id": user.id, assoc.column: grantable.id}))
                    outcome = ToggleOutcome.GRANTED
        except IntegrityError:
            logger.info(
                "toggle insert lost a concurrent race, retrying",
                extra={"context": {"id": str(user.id), "kind": kind.value, "grantable_id": grantable.id, "attempt": attempt}},
            )
            continue

        # 직접 SQL로 변경했으므로 로드된 컬렉션은 다시 읽도록 만료
        db.expire(user, [assoc.relation])
        return ToggleResult(
            kind=kind,
            outcome=outcome,
            user_id=user.id,
            grantable_id=grantable.id,
            grantable_name=grantable.name,
        )

    raise PersistenceError(
        f"Could not toggle {kind.value.lower()}",
        id=str(user.id),
        **{kind.value.lower(): grantable.name, "attempts": attempts},
    )


def toggle_role(db: Session, user_id: uuid.UUID, role_id: int, *, scope: Scope = Scope.ACTIVE_ONLY) -> ToggleResult:
    return toggle(db, Grantable.ROLE, user_id, role_id, scope=scope)


def toggle_permission(
    db: Session, user_id: uuid.UUID, permission_id: int, *, scope: Scope = Scope.ACTIVE_ONLY
) -> ToggleResult:
    return toggle(db, Grantable.PERMISSION, user_id, permission_id, scope=scope)


def has_role_named(db: Session, user: User, role_name: str) -> bool:
    stmt = (
        select(Role.id)
        .join(user_role, user_role.c.role_id == Role.id)
        .where(user_role.c.user_id == user.id, Role.name == role_name)
    )
    return db.scalar(stmt) is not None


# 직접 부여된 권한 + 보유 역할에 묶인 권한 (읽기 전용)
def effective_permissions(db: Session, user: User) -> set[str]:
    direct = (
        select(Permission.name)
        .join(user_permission, user_permission.c.permission_id == Permission.id)
        .where(user_permission.c.user_id == user.id)
    )
    via_roles = (
        select(Permission.name)
        .join(role_permission, role_permission.c.permission_id == Permission.id)
        .join(user_role, user_role.c.role_id == role_permission.c.role_id)
        .where(user_role.c.user_id == user.id)
    )
    return set(db.scalars(direct).all()) | set(db.scalars(via_roles).all())


def list_roles(db: Session) -> list[Role]:
    return list(db.scalars(select(Role).order_by(Role.name)).all())


def list_permissions(db: Session) -> list[Permission]:
    return list(db.scalars(select(Permission).order_by(Permission.name)).all())
