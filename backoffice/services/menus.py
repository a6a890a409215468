"""
services/menus.py

내비게이션 메뉴 트리 서비스.

메뉴는 parent_id 로 자기 자신을 참조하는 행(row)들의 집합이며,
트리(forest) 형태는 조회 시점에 부모별로 자식을 묶어서 만든다.
ORM 객체 간 양방향 자식 포인터는 유지하지 않는다.

주요 기능:
- 메뉴 노드 생성 / 수정 (부모 존재 및 순환 참조 검증)
- 메뉴 노드 삭제 (자식은 삭제하지 않고 루트로 승격)
- 메뉴 트리 조회 (형제 간 position → id 순 정렬)
- 현재 라우트 기준 활성(current) 노드 판정

설계 원칙:
- 삭제는 절대 하위로 전파하지 않음
- 저장된 데이터에 순환이 있으면 조용히 무한 루프를 돌지 않고
  MenuConfigurationError 로 즉시 실패

"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from backoffice.core.exceptions import MenuConfigurationError, NotFoundError, ValidationError
from backoffice.models.menu import Menu

logger = logging.getLogger(__name__)


@dataclass
class MenuNode:
    id: int
    name: str
    parent_id: int | None
    route_or_url: str
    icon: str | None
    active: bool
    position: int
    routes: list[str]
    children: list["MenuNode"] = field(default_factory=list)
    current: bool = False

    @classmethod
    def of(cls, menu: Menu) -> "MenuNode":
        return cls(
            id=menu.id,
            name=menu.name,
            parent_id=menu.parent_id,
            route_or_url=menu.route_or_url,
            icon=menu.icon,
            active=menu.active,
            position=menu.position,
            routes=list(menu.routes or []),
        )


@dataclass
class MenuSnapshot:
    id: int
    name: str
    parent_id: int | None
    orphaned_children: list[int] = field(default_factory=list)

    def context(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "parent_id": self.parent_id,
            "orphaned_children": self.orphaned_children,
        }


def _sibling_key(node: MenuNode) -> tuple[int, int]:
    return node.position, node.id


def require_menu(db: Session, node_id: int) -> Menu:
    menu = db.get(Menu, node_id)
    if menu is None:
        raise NotFoundError("Menu not found", id=node_id)
    return menu


"""
부모 지정 검증

- 부모 노드가 존재해야 함
- 자기 자신 또는 자신의 하위 노드를 부모로 지정할 수 없음
  (부모 체인을 거슬러 올라가며 node_id 를 만나면 순환)

"""

def _validate_parent(db: Session, parent_id: int | None, node_id: int | None) -> None:
    if parent_id is None:
        return
    if db.get(Menu, parent_id) is None:
        raise ValidationError("Parent menu does not exist", field="parent_id", parent_id=parent_id)
    if node_id is None:
        return

    seen = set()
    cursor = parent_id
    while cursor is not None:
        if cursor == node_id or cursor in seen:
            raise ValidationError("Menu cannot be nested under itself", field="parent_id", id=node_id, parent_id=parent_id)
        seen.add(cursor)
        cursor = db.scalar(select(Menu.parent_id).where(Menu.id == cursor))


def _next_position(db: Session, parent_id: int | None) -> int:
    stmt = select(func.max(Menu.position))
    stmt = stmt.where(Menu.parent_id.is_(None)) if parent_id is None else stmt.where(Menu.parent_id == parent_id)
    last = db.scalar(stmt)
    return 0 if last is None else last + 1


def upsert_menu_node(
    db: Session,
    *,
    name: str,
    node_id: int | None = None,
    parent_id: int | None = None,
    route_or_url: str = "#",
    icon: str | None = None,
    active: bool = True,
    position: int | None = None,
    routes: list[str] | None = None,
) -> Menu:
    if not name or not name.strip():
        raise ValidationError("name is required", field="name")

    menu = require_menu(db, node_id) if node_id is not None else Menu()
    _validate_parent(db, parent_id, node_id)

    if position is None:
        position = menu.position if node_id is not None and menu.parent_id == parent_id else _next_position(db, parent_id)

    menu.name = name.strip()
    menu.parent_id = parent_id
    menu.route_or_url = route_or_url or "#"
    menu.icon = icon
    menu.active = active
    menu.position = position
    menu.routes = list(routes or [])

    db.add(menu)
    db.flush()
    return menu


"""
메뉴 노드 삭제

- 자식 노드의 parent_id 를 NULL 로 변경 (루트로 승격, position 유지)
- 자식을 함께 삭제하지 않음
- DB 외래 키도 ON DELETE SET NULL 이지만 ORM 세션 상태와 맞추기 위해 먼저 명시적으로 갱신

"""

def delete_menu_node(db: Session, node_id: int) -> MenuSnapshot:
    menu = require_menu(db, node_id)
    children = list(db.scalars(select(Menu.id).where(Menu.parent_id == node_id).order_by(Menu.id)).all())

    snapshot = MenuSnapshot(id=menu.id, name=menu.name, parent_id=menu.parent_id, orphaned_children=children)

    if children:
        db.execute(update(Menu).where(Menu.parent_id == node_id).values(parent_id=None))
    db.delete(menu)
    db.flush()
    return snapshot


def _prune_inactive(nodes: list[MenuNode]) -> list[MenuNode]:
    kept = []
    for node in nodes:
        if not node.active:
            continue
        node.children = _prune_inactive(node.children)
        kept.append(node)
    return kept


"""
메뉴 트리 조회

- 전체 행을 id → MenuNode 로 적재한 뒤 parent_id 별로 자식을 묶음
- 루트 및 형제 노드는 (position, id) 오름차순
- 루트에서 도달할 수 없는 노드가 남으면 순환으로 판단해 MenuConfigurationError
- active_only=True 이면 비활성 노드와 그 하위 노드를 숨김

"""

def list_menu_tree(db: Session, *, active_only: bool = False) -> list[MenuNode]:
    nodes = {menu.id: MenuNode.of(menu) for menu in db.scalars(select(Menu)).all()}

    children_of: dict[int | None, list[MenuNode]] = defaultdict(list)
    for node in nodes.values():
        if node.parent_id is not None and node.parent_id not in nodes:
            raise MenuConfigurationError("Menu references a missing parent", id=node.id, parent_id=node.parent_id)
        children_of[node.parent_id].append(node)

    for siblings in children_of.values():
        siblings.sort(key=_sibling_key)

    roots = children_of[None]
    visited = set()
    stack = list(roots)
    while stack:
        node = stack.pop()
        visited.add(node.id)
        node.children = children_of.get(node.id, [])
        stack.extend(node.children)

    unreachable = sorted(set(nodes) - visited)
    if unreachable:
        logger.error("menu tree contains a cycle", extra={"context": {"ids": unreachable}})
        raise MenuConfigurationError("Menu tree contains a cycle", ids=unreachable)

    if active_only:
        return _prune_inactive(roots)
    return roots


# 현재 라우트가 routes 에 있거나, 하위 노드 중 하나라도 current 이면 current
def resolve_current(forest: list[MenuNode], route_name: str | None) -> set[int]:
    current: set[int] = set()

    def visit(node: MenuNode) -> bool:
        hit = False
        for child in node.children:
            hit = visit(child) or hit
        if route_name is not None and route_name in node.routes:
            hit = True
        if hit:
            current.add(node.id)
        return hit

    for root in forest:
        visit(root)
    return current


def mark_current(forest: list[MenuNode], route_name: str | None) -> list[MenuNode]:
    current = resolve_current(forest, route_name)

    def apply(nodes: list[MenuNode]) -> None:
        for node in nodes:
            node.current = node.id in current
            apply(node.children)

    apply(forest)
    return forest
