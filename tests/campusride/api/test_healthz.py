from campusride.api.system import router as system_router
from fastapi import FastAPI
from fastapi.testclient import TestClient


def create_app() -> FastAPI:
    app = FastAPI()
    app.include_router(system_router)
    return app


def test_healthz_ok():
    client = TestClient(create_app())
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "connections": 0}


def test_healthz_counts_open_sockets():
    from campusride.main import app

    with TestClient(app) as client:
        with client.websocket_connect("/ws"):
            assert client.get("/healthz").json()["connections"] == 1
        assert client.get("/healthz").json()["connections"] == 0
