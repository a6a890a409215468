# tests/helpers.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from backoffice.core.config import settings
from backoffice.core.security import get_password_hash
from backoffice.models.user import Permission, Role, User


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def get_or_create_role(db: Session, name: str) -> Role:
    role = db.scalar(select(Role).where(Role.name == name))
    if role is None:
        role = Role(name=name)
        db.add(role)
        db.commit()
        db.refresh(role)
    return role


def create_permission(db: Session, name: str) -> Permission:
    permission = Permission(name=name)
    db.add(permission)
    db.commit()
    db.refresh(permission)
    return permission


def create_user_in_db(db: Session, *, username: str, password: str = "Passw0rd!", roles=(), verified: bool = True) -> User:
    user = User(
        name=username.upper(),
        username=username,
        email=f"{username}@test.com",
        password_hash=get_password_hash(password),
        email_verified_at=datetime.now(timezone.utc) if verified else None,
    )
    user.roles = list(roles)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def login(client, username: str, password: str) -> str:
    r = client.post("/auth/login", json={"username": username, "password": password})
    assert r.status_code == 200, r.text
    return r.json()["access_token"]


def setup_superuser(client, db: Session) -> dict:
    """
    superuser 역할을 가진 관리자 계정 + 토큰 세팅
    """
    username = f"admin_{uuid.uuid4().hex[:6]}"
    password = "AdminPassw0rd!"
    role = get_or_create_role(db, settings.SUPERUSER_ROLE)
    admin = create_user_in_db(db, username=username, password=password, roles=[role])

    return {
        "admin_id": str(admin.id),
        "admin_username": username,
        "admin_password": password,
        "admin_token": login(client, username, password),
    }
