"""

superuser 초기 계정 생성 스크립트.

- 서버 최초 세팅 시 단 한 번 실행하는 용도
- .env에 정의된 SUPERUSER_* 환경 변수를 읽어
  superuser 역할과 최초 관리자 계정을 생성한다.
- 이미 superuser 역할을 가진 계정이 존재하면 생성하지 않고 종료한다.

사용 목적:
- 계정/권한/메뉴 관리 API에 접근할 수 있는
  최상위 관리자 계정을 안전하게 초기화하기 위함

사용 방법
- 가상환경 접속
- (.venv) ~\backend~$ python -m scripts.create_superuser

"""

import os
from dotenv import load_dotenv
load_dotenv()

from sqlalchemy import select
from backoffice.core.config import settings
from backoffice.db.session import SessionLocal
from backoffice.models.user import Role
from backoffice.services.authz import has_role_named, toggle_role
from backoffice.services.users import Scope, create_user, get_user_by_username, scoped_users



def main():
    db = SessionLocal()
    try:
        role = db.scalar(select(Role).where(Role.name == settings.SUPERUSER_ROLE))
        if role is None:
            role = Role(name=settings.SUPERUSER_ROLE)
            db.add(role)
            db.flush()

        for user in db.scalars(scoped_users(Scope.ACTIVE_ONLY)).all():
            if has_role_named(db, user, settings.SUPERUSER_ROLE):
                print(f"superuser already exists ({user.username}). Skip creation.")
                db.commit()
                return

        name = os.environ.get("SUPERUSER_NAME", "Super User")
        username = os.environ["SUPERUSER_USERNAME"]
        email = os.environ["SUPERUSER_EMAIL"]

        if get_user_by_username(db, username, scope=Scope.INCLUDING_DELETED):
            raise RuntimeError("Username already exists but is not a superuser")

        created = create_user(db, name=name, username=username, email=email)
        toggle_role(db, created.user.id, role.id)
        db.commit()

        # 임시 비밀번호는 이 출력에서 한 번만 확인 가능
        print(f"superuser created: {created.user.username} / {created.password}")

    finally:
        db.close()


if __name__ == "__main__":
    main()
