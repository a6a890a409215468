"""
session.py

데이터베이스 엔진 및 세션(Session) 관리 파일.

이 파일은 SQLAlchemy Engine과 SessionLocal을 생성하여
애플리케이션 전반에서 공통으로 사용하는 DB 연결을 관리한다.

FastAPI 의존성(get_db)을 통해
요청 단위로 세션을 생성/종료하는 구조를 지원한다.

설계 원칙:
- DB 연결 설정은 한 곳에서만 정의
- 세션 생성/종료 책임을 명확히 분리
- pool_pre_ping=True로 유휴 연결 오류 방지
- SQLite 사용 시 외래 키 제약(ON DELETE SET NULL / CASCADE)을 강제

관련 파일:
- backoffice.core.config        : DATABASE_URL 설정
- backoffice.core.deps          : get_db 의존성

"""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from backoffice.core.config import settings


def build_engine(url: str) -> Engine:
    connect_args = {}
    if url.startswith("sqlite"):
        # 요청 스레드 간 커넥션 공유 + 잠금 대기 시간 상한(초)
        connect_args = {"check_same_thread": False, "timeout": 15}

    engine = create_engine(url, pool_pre_ping=True, connect_args=connect_args)

    if engine.dialect.name == "sqlite":
        # SQLite는 커넥션마다 외래 키 검사를 켜야 함
        @event.listens_for(engine, "connect")
        def _enable_sqlite_fks(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


engine = build_engine(settings.DATABASE_URL)

# 요청 단위로 사용할 세션 팩토리
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)
