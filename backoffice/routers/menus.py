"""
menus.py

관리자 전용 내비게이션 메뉴 관리 API.

- 메뉴 트리 조회 (비활성 포함 전체)
- 메뉴 노드 생성 / 수정
- 메뉴 노드 삭제 (자식 노드는 루트로 승격)

"""

from typing import List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from backoffice.core.deps import get_db, get_current_superuser
from backoffice.core.exceptions import BackofficeError, MenuConfigurationError
from backoffice.models.admin_log import AdminAction
from backoffice.models.user import User
from backoffice.routers.common import audit, commit, fail, to_http_exception
from backoffice.schemas.menu import MenuNodeResponse, MenuResponse, MenuUpsert
from backoffice.schemas.user import MessageResponse
from backoffice.services import menus


router = APIRouter(prefix="/admin/menus", tags=["admin-menus"])


@router.get("", response_model=List[MenuNodeResponse])
def list_menus(
    db: Session = Depends(get_db),
    _: User = Depends(get_current_superuser),
):
    try:
        return menus.list_menu_tree(db)
    except MenuConfigurationError as e:
        raise to_http_exception(e)


def _save(db: Session, request: Request, admin: User, data: MenuUpsert, node_id: int | None = None):
    try:
        menu = menus.upsert_menu_node(db, node_id=node_id, **data.model_dump())
        audit(
            db,
            request,
            actor=admin,
            action=AdminAction.UPSERT_MENU,
            context={"id": menu.id, "name": menu.name, "parent_id": menu.parent_id, "created": node_id is None},
        )
        commit(db, id=menu.id, name=menu.name)
    except BackofficeError as e:
        raise fail(db, request, actor=admin, action=AdminAction.UPSERT_MENU, error=e)

    db.refresh(menu)
    return menu


@router.post("", response_model=MenuResponse)
def create_menu(
    data: MenuUpsert,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_superuser),
):
    return _save(db, request, admin, data)


@router.put("/{node_id}", response_model=MenuResponse)
def update_menu(
    node_id: int,
    data: MenuUpsert,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_superuser),
):
    return _save(db, request, admin, data, node_id=node_id)


@router.delete("/{node_id}", response_model=MessageResponse)
def delete_menu(
    node_id: int,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_superuser),
):
    try:
        snapshot = menus.delete_menu_node(db, node_id)
        audit(db, request, actor=admin, action=AdminAction.DELETE_MENU, context=snapshot.context())
        commit(db, **snapshot.context())
    except BackofficeError as e:
        raise fail(db, request, actor=admin, action=AdminAction.DELETE_MENU, error=e)

    return {"message": "menu has been deleted", "data": snapshot.context()}
