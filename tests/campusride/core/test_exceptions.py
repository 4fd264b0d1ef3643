from campusride.core.exceptions import RecordNotFoundError, register_exception_handlers
from fastapi import FastAPI
from fastapi.testclient import TestClient


def create_app() -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/missing")
    def missing():
        raise RecordNotFoundError("Ride not found", details={"ride_id": 4})

    @app.get("/boom")
    def boom():
        raise ValueError("unexpected")

    return app


def test_domain_errors_render_error_envelope():
    resp = TestClient(create_app()).get("/missing")
    assert resp.status_code == 404
    assert resp.json() == {
        "error": "Ride not found",
        "code": "not_found",
        "type": "RecordNotFoundError",
        "details": {"ride_id": 4},
    }


def test_unhandled_errors_are_masked():
    client = TestClient(create_app(), raise_server_exceptions=False)
    resp = client.get("/boom")
    assert resp.status_code == 500
    assert resp.json()["code"] == "internal_error"
