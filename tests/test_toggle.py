"""
역할/권한 토글 프로토콜 테스트.
- granted → revoked → granted 순환, 역할/권한 연관 분리,
  존재하지 않는 대상, Scope, 재시도 경로, 동시 토글 홀짝 수렴을 검증한다.
"""

import threading

import pytest
from sqlalchemy import insert

from backoffice.core.exceptions import NotFoundError, PersistenceError
from backoffice.models.user import role_permission
from backoffice.services import authz, users
from backoffice.services.authz import Grantable, ToggleOutcome
from backoffice.services.users import Scope

from tests.helpers import create_permission, create_user_in_db, get_or_create_role


def test_toggle_role_is_idempotent_cycle(db):
    user = create_user_in_db(db, username="ada")
    role = get_or_create_role(db, "editor")

    first = authz.toggle_role(db, user.id, role.id)
    db.commit()
    assert first.outcome == ToggleOutcome.GRANTED
    assert first.success is True
    assert authz.holds(db, Grantable.ROLE, user.id, role.id)

    second = authz.toggle_role(db, user.id, role.id)
    db.commit()
    assert second.outcome == ToggleOutcome.REVOKED
    assert not authz.holds(db, Grantable.ROLE, user.id, role.id)

    third = authz.toggle_role(db, user.id, role.id)
    db.commit()
    assert third.outcome == ToggleOutcome.GRANTED
    assert third.context() == {"id": str(user.id), "role": "editor", "outcome": "granted"}


def test_loaded_collection_reflects_toggle(db):
    user = create_user_in_db(db, username="ada")
    role = get_or_create_role(db, "editor")
    assert user.roles == []

    authz.toggle_role(db, user.id, role.id)
    assert [r.name for r in user.roles] == ["editor"]


def test_role_and_permission_sets_are_separate(db):
    user = create_user_in_db(db, username="ada")
    role = get_or_create_role(db, "editor")
    permission = create_permission(db, "posts.publish")
    other = create_permission(db, "posts.delete")
    db.execute(insert(role_permission).values(role_id=role.id, permission_id=permission.id))
    db.commit()

    authz.toggle_role(db, user.id, role.id)
    db.commit()

    # 역할 부여가 직접 권한 집합을 바꾸지 않음
    assert not authz.holds(db, Grantable.PERMISSION, user.id, permission.id)
    assert authz.effective_permissions(db, user) == {"posts.publish"}

    result = authz.toggle_permission(db, user.id, other.id)
    db.commit()
    assert result.kind == Grantable.PERMISSION
    assert result.outcome == ToggleOutcome.GRANTED
    assert authz.effective_permissions(db, user) == {"posts.publish", "posts.delete"}

    authz.toggle_role(db, user.id, role.id)
    db.commit()
    assert authz.effective_permissions(db, user) == {"posts.delete"}


def test_toggle_unknown_grantable_raises_before_mutation(db):
    user = create_user_in_db(db, username="ada")

    with pytest.raises(NotFoundError):
        authz.toggle_role(db, user.id, 9999)
    with pytest.raises(NotFoundError):
        authz.toggle_permission(db, user.id, 9999)


def test_toggle_unknown_user_raises(db):
    import uuid

    role = get_or_create_role(db, "editor")
    with pytest.raises(NotFoundError):
        authz.toggle_role(db, uuid.uuid4(), role.id)


def test_toggle_respects_scope_for_soft_deleted_user(db):
    user = create_user_in_db(db, username="ada")
    role = get_or_create_role(db, "editor")
    users.delete_user(db, user.id)
    db.commit()

    with pytest.raises(NotFoundError):
        authz.toggle_role(db, user.id, role.id)

    result = authz.toggle_role(db, user.id, role.id, scope=Scope.INCLUDING_DELETED)
    db.commit()
    assert result.outcome == ToggleOutcome.GRANTED


def _duplicate_insert_once(monkeypatch, failures: int):
    """처음 ``failures`` 번은 같은 쌍을 두 번 INSERT 해서 키 충돌을 흉내 낸다."""
    real_insert = authz.insert
    calls = {"n": 0}

    class _Colliding:
        def __init__(self, table):
            self.table = table

        def values(self, row):
            calls["n"] += 1
            if calls["n"] <= failures:
                return real_insert(self.table).values([row, row])
            return real_insert(self.table).values(row)

    monkeypatch.setattr(authz, "insert", _Colliding)
    return calls


def test_toggle_retries_after_key_collision(db, monkeypatch):
    user = create_user_in_db(db, username="ada")
    role = get_or_create_role(db, "editor")
    calls = _duplicate_insert_once(monkeypatch, failures=1)

    result = authz.toggle_role(db, user.id, role.id)
    db.commit()

    assert calls["n"] == 2
    assert result.outcome == ToggleOutcome.GRANTED
    assert authz.holds(db, Grantable.ROLE, user.id, role.id)


def test_toggle_gives_up_after_max_attempts(db, monkeypatch):
    user = create_user_in_db(db, username="ada")
    role = get_or_create_role(db, "editor")
    _duplicate_insert_once(monkeypatch, failures=10)

    with pytest.raises(PersistenceError) as exc:
        authz.toggle(db, Grantable.ROLE, user.id, role.id, max_attempts=3)
    db.rollback()

    assert exc.value.context["attempts"] == 3
    assert not authz.holds(db, Grantable.ROLE, user.id, role.id)


@pytest.mark.parametrize("n", [4, 5])
def test_concurrent_toggles_settle_by_parity(db, session_factory, n):
    user = create_user_in_db(db, username="ada")
    role = get_or_create_role(db, "editor")
    user_id, role_id = user.id, role.id

    barrier = threading.Barrier(n)
    outcomes = []
    errors = []

    def worker():
        session = session_factory()
        try:
            barrier.wait()
            result = authz.toggle_role(session, user_id, role_id)
            session.commit()
            outcomes.append(result.outcome)
        except Exception as e:  # 스레드 밖으로 전달하기 위해 수집
            errors.append(e)
        finally:
            session.close()

    threads = [threading.Thread(target=worker) for _ in range(n)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len(outcomes) == n
    db.expire_all()
    assert authz.holds(db, Grantable.ROLE, user_id, role_id) is (n % 2 == 1)
    assert outcomes.count(ToggleOutcome.GRANTED) - outcomes.count(ToggleOutcome.REVOKED) == n % 2
