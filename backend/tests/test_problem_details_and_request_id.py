from __future__ import annotations

PROBLEM_JSON = "application/problem+json"


def _is_problem(response) -> bool:
    return response.headers.get("content-type", "").startswith(PROBLEM_JSON)


def test_every_response_carries_a_request_id(client):
    generated = client.get("/").headers.get("X-Request-Id")
    assert generated

    echoed = client.get("/products", headers={"X-Request-Id": "abc-123"})
    assert echoed.status_code == 200
    assert echoed.headers["X-Request-Id"] == "abc-123"


def test_validation_failure_lists_fields(client):
    r = client.post("/auth/login", json={})
    assert r.status_code == 422
    assert _is_problem(r)
    body = r.json()
    assert body["title"] == "Validation Failed"
    assert body["status"] == 422
    assert {e["path"] for e in body["errors"]} == {"email", "password"}
    assert body["requestId"]


def test_unknown_route_is_problem_json(client):
    r = client.get("/warehouses")
    assert r.status_code == 404
    assert _is_problem(r)
    body = r.json()
    assert body["detail"] == "Route not found"
    assert body["instance"] == "/warehouses"
    assert body["requestId"]


def test_missing_token_is_problem_json(client):
    r = client.get("/auth/profile", headers={"X-Request-Id": "rid-401"})
    assert r.status_code == 401
    assert _is_problem(r)
    assert r.headers["WWW-Authenticate"] == "Bearer"
    assert r.json()["requestId"] == "rid-401"


def test_forbidden_is_problem_json(client, customer_headers):
    r = client.get("/users", headers=customer_headers)
    assert r.status_code == 403
    body = r.json()
    assert body["title"] == "Forbidden"
    assert body["detail"] == "Access denied. Required roles: admin, moderator"


def test_server_errors_hide_detail_in_production(app, settings):
    from starlette.requests import Request

    from storefront.problem_details import problem_response

    settings.environment = "production"
    request = Request(
        {
            "type": "http",
            "method": "GET",
            "path": "/boom",
            "headers": [],
            "query_string": b"",
            "app": app,
            "state": {"request_id": "rid-500"},
        }
    )

    r = problem_response(request=request, status_code=500, detail="db password is hunter2")
    assert b"hunter2" not in r.body
    assert b"rid-500" in r.body


def test_malformed_request_id_is_replaced(client):
    r = client.get("/", headers={"X-Request-Id": "bad id with spaces"})
    rid = r.headers["X-Request-Id"]
    assert rid != "bad id with spaces"
    assert len(rid) == 36

    long_id = "a" * 129
    assert client.get("/", headers={"X-Request-Id": long_id}).headers["X-Request-Id"] != long_id


def test_resolve_request_id():
    from storefront.middleware.request_context import resolve_request_id

    assert resolve_request_id("  trace-1.2:3  ") == "trace-1.2:3"
    assert resolve_request_id(None) != resolve_request_id(None)
    assert resolve_request_id("<script>") != "<script>"


def test_status_title_falls_back_for_unknown_codes():
    from storefront.problem_details import status_title

    assert status_title(404) == "Not Found"
    assert status_title(503) == "Service Unavailable"
    assert status_title(599) == "Error"


def test_storefront_errors_keep_title_and_extensions(app):
    import orjson
    from starlette.requests import Request

    from storefront.errors import Unauthorized
    from storefront.problem_details import error_response

    request = Request(
        {
            "type": "http",
            "method": "GET",
            "path": "/auth/refresh",
            "headers": [],
            "query_string": b"",
            "app": app,
            "state": {},
        }
    )

    r = error_response(request, Unauthorized("Invalid refresh token"))
    assert r.status_code == 401
    assert r.headers["WWW-Authenticate"] == "Bearer"
    body = orjson.loads(r.body)
    assert body["title"] == "Unauthorized"
    assert body["detail"] == "Invalid refresh token"
    assert body["instance"] == "/auth/refresh"
    assert "requestId" not in body


def test_database_outage_maps_to_503(app):
    from fastapi.testclient import TestClient
    from sqlalchemy.exc import OperationalError

    @app.get("/boom-db")
    def boom_db():
        raise OperationalError("SELECT 1", {}, Exception("unable to open database file"))

    with TestClient(app) as c:
        r = c.get("/boom-db")
    assert r.status_code == 503
    assert r.json()["detail"] == "Database is unavailable"


def test_unhandled_errors_are_500_problems(app):
    from fastapi.testclient import TestClient

    @app.get("/boom")
    def boom():
        raise RuntimeError("kaboom")

    with TestClient(app, raise_server_exceptions=False) as c:
        r = c.get("/boom", headers={"X-Request-Id": "rid-boom"})
    assert r.status_code == 500
    assert _is_problem(r)
    body = r.json()
    assert body["title"] == "Internal Server Error"
    assert body["detail"] == "kaboom"
    assert body["requestId"] == "rid-boom"
