from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class MenuUpsert(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    parent_id: Optional[int] = None
    route_or_url: str = Field("#", max_length=255)
    icon: Optional[str] = Field(None, max_length=255)
    active: bool = True
    # 생략하면 같은 부모의 마지막 위치 뒤에 배치
    position: Optional[int] = None
    routes: List[str] = []


class MenuResponse(BaseModel):
    id: int
    name: str
    parent_id: Optional[int]
    route_or_url: str
    icon: Optional[str]
    active: bool
    position: int
    routes: List[str]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class MenuNodeResponse(BaseModel):
    id: int
    name: str
    parent_id: Optional[int]
    route_or_url: str
    icon: Optional[str]
    active: bool
    position: int
    routes: List[str]
    current: bool = False
    children: List["MenuNodeResponse"] = []

    model_config = ConfigDict(from_attributes=True)
