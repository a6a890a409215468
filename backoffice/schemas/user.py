from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field


# 🔹 계정 생성/수정 요청용 (형식 검증만, 중복 검사는 서비스에서)
class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    username: str = Field(..., min_length=1, max_length=64)
    email: EmailStr = Field(..., max_length=255)


class UserUpdate(UserCreate):
    pass


class RoleResponse(BaseModel):
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


class PermissionResponse(BaseModel):
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


# 🔹 유저 응답용 (password_hash 제외)
class UserResponse(BaseModel):
    id: UUID
    name: str
    username: str
    email: str
    email_verified_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    roles: List[RoleResponse] = []
    permissions: List[PermissionResponse] = []

    model_config = ConfigDict(from_attributes=True)


class UserCounts(BaseModel):
    all: int
    active: int
    inactive: int
    deleted: int

    model_config = ConfigDict(from_attributes=True)


class UserListResponse(BaseModel):
    data: List[UserResponse]
    counts: UserCounts
    roles: List[RoleResponse]
    permissions: List[PermissionResponse]


# 생성 / 비밀번호 초기화 응답: 임시 비밀번호는 이 응답에서 한 번만 노출
class CreatedUserResponse(BaseModel):
    message: str
    id: UUID
    password: str


class PasswordResetResponse(BaseModel):
    type: Literal["success"] = "success"
    timer: int = 5000
    text: str
    password: str


class ToggleRoleRequest(BaseModel):
    user_id: UUID
    role_id: int


class TogglePermissionRequest(BaseModel):
    user_id: UUID
    permission_id: int


class ToggleResponse(BaseModel):
    type: Literal["success"] = "success"
    timer: int = 5000
    text: str
    outcome: Literal["granted", "revoked"]


class MessageResponse(BaseModel):
    message: str
    data: dict
