"""
계정 수명 주기 서비스 테스트.
- 생성 시 소문자 정규화 / 임시 비밀번호 / 즉시 인증,
  대소문자 무시 중복 검사, Soft Delete ↔ 복구, 영구 삭제, 비밀번호 초기화를 검증한다.
"""

import uuid

import pytest

from backoffice.core.exceptions import NotFoundError, ValidationError
from backoffice.core.security import verify_password
from backoffice.services import authz, users
from backoffice.services.users import Scope

from tests.helpers import create_permission, get_or_create_role


def test_create_user_normalizes_and_returns_password_once(db):
    created = users.create_user(db, name="Ada Lovelace", username="ADA", email="ADA@X.COM")
    db.commit()

    user = created.user
    assert user.username == "ada"
    assert user.email == "ada@x.com"
    assert user.name == "Ada Lovelace"
    assert user.email_verified_at is not None
    assert user.deleted_at is None

    assert len(created.password) == 8
    assert created.password.isalnum()
    assert user.password_hash != created.password
    assert verify_password(created.password, user.password_hash)

    # 기본 역할/권한 없음
    assert user.roles == []
    assert user.permissions == []


def test_username_differing_only_by_case_is_rejected(db):
    users.create_user(db, name="Ada", username="ada", email="ada@x.com")
    db.commit()

    with pytest.raises(ValidationError) as exc:
        users.create_user(db, name="Other", username="ADA", email="other@x.com")
    assert exc.value.field == "username"

    with pytest.raises(ValidationError) as exc:
        users.create_user(db, name="Other", username="other", email="Ada@X.com")
    assert exc.value.field == "email"


def test_soft_deleted_user_keeps_username_taken(db):
    created = users.create_user(db, name="Ada", username="ada", email="ada@x.com")
    db.commit()
    users.delete_user(db, created.user.id, force=False)
    db.commit()

    with pytest.raises(ValidationError):
        users.create_user(db, name="Ada 2", username="ada", email="ada2@x.com")


def test_force_delete_frees_username(db):
    created = users.create_user(db, name="Ada", username="ada", email="ada@x.com")
    db.commit()
    first_id = created.user.id
    users.delete_user(db, first_id, force=True)
    db.commit()

    again = users.create_user(db, name="Ada", username="ADA", email="ada@x.com")
    db.commit()
    assert again.user.id != first_id


def test_update_user_excludes_self_from_uniqueness(db):
    ada = users.create_user(db, name="Ada", username="ada", email="ada@x.com").user
    users.create_user(db, name="Bob", username="bob", email="bob@x.com")
    db.commit()

    change = users.update_user(db, ada.id, name="Ada L.", username="ADA", email="ada@x.com")
    db.commit()
    assert change.before.name == "Ada"
    assert change.after.name == "Ada L."
    assert change.user.username == "ada"

    with pytest.raises(ValidationError):
        users.update_user(db, ada.id, name="Ada", username="Bob", email="ada@x.com")
    db.rollback()

    db.refresh(ada)
    assert ada.username == "ada"


def test_update_missing_user_raises_not_found(db):
    with pytest.raises(NotFoundError):
        users.update_user(db, uuid.uuid4(), name="x", username="x", email="x@x.com")


def test_soft_delete_and_restore_keep_associations(db):
    role = get_or_create_role(db, "editor")
    permission = create_permission(db, "posts.publish")
    user = users.create_user(db, name="Ada", username="ada", email="ada@x.com").user
    db.commit()

    authz.toggle_role(db, user.id, role.id)
    authz.toggle_permission(db, user.id, permission.id)
    db.commit()

    snapshot = users.delete_user(db, user.id, force=False)
    db.commit()
    assert snapshot.forced is False
    assert snapshot.deleted_at is not None
    assert users.get_user(db, user.id, scope=Scope.ACTIVE_ONLY) is None
    assert users.get_user(db, user.id, scope=Scope.INCLUDING_DELETED) is not None

    # Soft Delete 중에도 연관은 그대로
    assert authz.holds(db, authz.Grantable.ROLE, user.id, role.id)

    users.restore_user(db, user.id)
    db.commit()

    restored = users.get_user(db, user.id, scope=Scope.ACTIVE_ONLY)
    assert restored is not None
    assert [r.name for r in restored.roles] == ["editor"]
    assert [p.name for p in restored.permissions] == ["posts.publish"]


def test_soft_delete_twice_keeps_first_timestamp(db):
    user = users.create_user(db, name="Ada", username="ada", email="ada@x.com").user
    db.commit()

    users.delete_user(db, user.id)
    db.commit()
    db.refresh(user)
    first = user.deleted_at

    users.delete_user(db, user.id)
    db.commit()
    db.refresh(user)
    assert first is not None
    assert user.deleted_at == first


def test_force_delete_then_restore_is_not_found(db):
    role = get_or_create_role(db, "editor")
    user = users.create_user(db, name="Ada", username="ada", email="ada@x.com").user
    db.commit()
    authz.toggle_role(db, user.id, role.id)
    db.commit()

    user_id = user.id
    snapshot = users.delete_user(db, user_id, force=True)
    db.commit()
    assert snapshot.forced is True
    assert snapshot.context()["username"] == "ada"

    assert not authz.holds(db, authz.Grantable.ROLE, user_id, role.id)
    with pytest.raises(NotFoundError):
        users.restore_user(db, user_id)
    with pytest.raises(NotFoundError):
        users.delete_user(db, user_id)


def test_force_delete_works_on_soft_deleted_user(db):
    user = users.create_user(db, name="Ada", username="ada", email="ada@x.com").user
    db.commit()
    users.delete_user(db, user.id)
    db.commit()

    users.delete_user(db, user.id, force=True)
    db.commit()
    assert users.get_user(db, user.id, scope=Scope.INCLUDING_DELETED) is None


def test_reset_password_replaces_hash(db):
    created = users.create_user(db, name="Ada", username="ada", email="ada@x.com")
    db.commit()

    new_password = users.reset_password(db, created.user.id)
    db.commit()
    db.refresh(created.user)

    assert len(new_password) == 8
    assert verify_password(new_password, created.user.password_hash)
    assert not verify_password(created.password, created.user.password_hash)


def test_reset_password_on_deleted_user_is_not_found(db):
    user = users.create_user(db, name="Ada", username="ada", email="ada@x.com").user
    db.commit()
    users.delete_user(db, user.id)
    db.commit()

    with pytest.raises(NotFoundError):
        users.reset_password(db, user.id)


def test_count_users(db):
    a = users.create_user(db, name="A", username="a", email="a@x.com").user
    users.create_user(db, name="B", username="b", email="b@x.com")
    c = users.create_user(db, name="C", username="c", email="c@x.com").user
    c.email_verified_at = None
    db.commit()
    users.delete_user(db, a.id)
    db.commit()

    counts = users.count_users(db)
    assert counts.all == 3
    assert counts.active == 2
    assert counts.inactive == 1
    assert counts.deleted == 1

    assert [u.username for u in users.list_users(db, scope=Scope.DELETED_ONLY)] == ["a"]
    assert [u.username for u in users.list_users(db, scope=Scope.ACTIVE_ONLY)] == ["b", "c"]


def test_blank_fields_are_rejected(db):
    with pytest.raises(ValidationError) as exc:
        users.create_user(db, name="  ", username="ada", email="ada@x.com")
    assert exc.value.field == "name"


def _skip_precheck(monkeypatch):
    # 사전 중복 검사를 건너뛰어 DB UNIQUE 제약까지 도달시킨다
    monkeypatch.setattr(users, "_ensure_unique", lambda *args, **kwargs: None)


def test_unique_constraint_on_create_becomes_validation_error(db, monkeypatch):
    users.create_user(db, name="Ada", username="ada", email="ada@x.com")
    db.commit()
    _skip_precheck(monkeypatch)

    with pytest.raises(ValidationError) as exc:
        users.create_user(db, name="Ada 2", username="ADA", email="ada2@x.com")
    assert exc.value.context["username"] == "ada"

    # 세션은 계속 사용 가능
    other = users.create_user(db, name="Bob", username="bob", email="bob@x.com")
    db.commit()
    assert [u.username for u in users.list_users(db, scope=Scope.ACTIVE_ONLY)] == ["ada", "bob"]
    assert other.user.id is not None


def test_unique_constraint_on_update_becomes_validation_error(db, monkeypatch):
    ada = users.create_user(db, name="Ada", username="ada", email="ada@x.com").user
    users.create_user(db, name="Bob", username="bob", email="bob@x.com")
    db.commit()
    _skip_precheck(monkeypatch)

    with pytest.raises(ValidationError) as exc:
        users.update_user(db, ada.id, name="Ada", username="bob", email="ada@x.com")
    assert exc.value.context["username"] == "bob"

    db.refresh(ada)
    assert ada.username == "ada"

    change = users.update_user(db, ada.id, name="Ada L.", username="ada", email="ada@x.com")
    db.commit()
    assert change.after.name == "Ada L."
