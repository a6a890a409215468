"""
security.py

비밀번호 해싱, 임시 비밀번호 생성, JWT 토큰 생성/검증을 담당하는 보안 유틸리티 모음.

이 파일은 인증(auth) 및 계정 관리 로직에서 사용하는
저수준(low-level) 보안 기능만을 제공하며,
라우터나 비즈니스 로직은 포함하지 않는다.

주요 기능:
- 비밀번호 해싱 및 검증 (bcrypt)
- 관리자 발급용 임시 비밀번호 생성 (secrets)
- JWT Access Token 생성 / 디코딩

설계 원칙:
- DB에는 해시 값만 저장하고 평문 비밀번호는 호출 측에 한 번만 반환
- 시간 기반(exp) 만료는 UTC 기준으로 처리

관련 파일:
- backoffice.core.config        : JWT 시크릿 키 및 만료 설정
- backoffice.core.deps          : 토큰을 실제로 검증하는 인증 의존성
- backoffice.services.users     : 계정 생성 / 비밀번호 초기화

"""

import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt, JWTError
from passlib.context import CryptContext

from backoffice.core.config import settings


# bcrypt 기반 비밀번호 해싱 컨텍스트
# deprecated="auto"로 향후 알고리즘 교체 가능하도록 설정

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

PASSWORD_ALPHABET = string.ascii_letters + string.digits


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


"""
임시 비밀번호 생성 함수

- 영문 대소문자 + 숫자 조합
- 기본 길이는 settings.GENERATED_PASSWORD_LENGTH (8자)
- 장기 사용이 아닌 최초 로그인용 기본 자격 증명

"""

def generate_password(length: Optional[int] = None) -> str:
    length = length or settings.GENERATED_PASSWORD_LENGTH
    return "".join(secrets.choice(PASSWORD_ALPHABET) for _ in range(length))


def create_access_token(subject: str, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    payload = {
        "sub": subject,
        "type": "access",
        "exp": int(expire.timestamp()),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


"""
Access Token 디코딩 함수

- 서명 / 만료 검증
- 토큰 타입(access) 확인 후 subject(user_id) 반환
- 유효하지 않을 경우 JWTError 발생

"""

def decode_access_token(token: str) -> str:
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    if payload.get("type") != "access":
        raise JWTError("Not an access token")
    sub = payload.get("sub")
    if not sub:
        raise JWTError("Missing subject")
    return sub
