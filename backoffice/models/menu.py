"""
menu.py

내비게이션 메뉴(Menu) 모델 정의 파일.

메뉴는 parent_id 로 자기 자신을 참조하는 트리 구조이며,
부모 노드가 삭제되면 자식 노드는 삭제되지 않고 루트(parent_id=NULL)가 된다.

- route_or_url : 라우트 이름 또는 URL (기본값 '#')
- position     : 형제 노드 간 정렬 순서 (연속일 필요 없음, 동일하면 id 순)
- routes       : 활성 상태 판정에 사용하는 라우트 이름 목록

"""

from sqlalchemy import JSON, Boolean, ForeignKey, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.db.base import Base, TimestampMixin


class Menu(TimestampMixin, Base):
    __tablename__ = "menus"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    parent_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("menus.id", ondelete="SET NULL"), nullable=True, index=True
    )

    route_or_url: Mapped[str] = mapped_column(String(255), nullable=False, default="#", server_default="#")
    icon: Mapped[str | None] = mapped_column(String(255), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=text("true"))
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    routes: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list, server_default=text("'[]'"))
