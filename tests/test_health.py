"""
앱 조립 상태 확인: 헬스 체크, DB 연결, 라우터 등록.
"""


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_db_ping_uses_overridden_session(client):
    r = client.get("/db-ping")
    assert r.status_code == 200
    assert r.json() == {"db": "ok", "value": 1}


def test_backoffice_routes_are_registered(client):
    paths = client.get("/openapi.json").json()["paths"]
    for path in (
        "/auth/login",
        "/auth/menu",
        "/admin/users",
        "/admin/users/toggle-role",
        "/admin/users/toggle-permission",
        "/admin/menus",
        "/admin/logs",
    ):
        assert path in paths
