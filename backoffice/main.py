"""
main.py

FastAPI 애플리케이션 진입점(Entry Point).

이 파일은 서버 실행 시 가장 먼저 로드되며,
애플리케이션 전반의 설정과 라우터 등록을 담당한다.

주요 역할:
- 로깅 기본 설정 (LOG_LEVEL)
- FastAPI 앱 인스턴스 생성
- CORS 미들웨어 설정
- 각 도메인별 라우터(auth, admin, menus) 등록
- 헬스 체크 및 DB 연결 상태 확인용 엔드포인트 제공

설계 원칙:
- 비즈니스 로직은 포함하지 않고 설정/조립 역할만 수행
- 실제 기능은 routers / services 계층에 위임

관련 파일:
- backoffice.core.config        : 환경 변수 및 설정 로드
- backoffice.core.deps          : DB 세션 의존성
- backoffice.routers.*          : 기능별 API 라우터

"""

import logging

from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session
from sqlalchemy import text

from backoffice.core.config import settings
from backoffice.core.deps import get_db
from backoffice.routers import admin, auth, menus

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

app = FastAPI(title="Back Office")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(admin.router)
app.include_router(menus.router)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/db-ping")
def db_ping(db: Session = Depends(get_db)):
    value = db.execute(text("SELECT 1")).scalar_one()
    return {"db": "ok", "value": value}
