"""
exceptions.py

서비스 계층에서 사용하는 도메인 예외 정의 파일.

서비스 함수는 HTTP를 알지 못하므로 HTTPException 대신
아래 예외를 발생시키고, 라우터가 이를 상태 코드로 변환한다.

- ValidationError        : 중복/형식 위반 (재입력 요청 가능)
- NotFoundError          : 대상 엔티티 없음 또는 조회 범위(scope) 밖
- PersistenceError       : 커밋/제약 조건 충돌을 해소하지 못한 경우
- MenuConfigurationError : 저장된 메뉴 트리에 순환이 존재하는 경우

모든 예외는 감사 로그에 남길 수 있도록 context(dict)를 함께 가진다.
context에는 절대 평문 비밀번호를 넣지 않는다.

"""


class BackofficeError(Exception):
    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context


class ValidationError(BackofficeError):
    """Uniqueness or shape violation. ``field`` names the offending input when known."""

    def __init__(self, message: str, *, field: str | None = None, **context):
        super().__init__(message, **context)
        self.field = field


class NotFoundError(BackofficeError):
    pass


class PersistenceError(BackofficeError):
    pass


class MenuConfigurationError(BackofficeError):
    pass
