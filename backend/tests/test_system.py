from shopledger.extensions import db
from shopledger.models import User


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["status"] == "healthy"
    assert body["checks"]["database"]["details"] == {"products": 0, "customers": 0, "sales": 0}


def test_cors_header_only_for_known_origins(client, app):
    allowed = app.config["CORS_ORIGINS"][0]

    resp = client.get("/health", headers={"Origin": allowed})
    assert resp.headers["Access-Control-Allow-Origin"] == allowed

    resp = client.get("/health", headers={"Origin": "http://evil.example"})
    assert "Access-Control-Allow-Origin" not in resp.headers


def test_unexpected_error_returns_500(client, monkeypatch):
    from shopledger.services import reporting_service

    def boom():
        raise RuntimeError("kaboom")

    monkeypatch.setattr(reporting_service, "sales_today_summary", boom)

    resp = client.get("/api/reports/sales-today-summary")
    assert resp.status_code == 500
    assert resp.get_json() == {"error": "Internal server error"}


def test_sqlite_foreign_keys_enabled(app):
    assert db.session.execute(db.text("PRAGMA foreign_keys")).scalar() == 1


def test_cli_init_seeds_users(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["system", "init"])
    assert result.exit_code == 0, result.output
    assert "Created user: admin" in result.output

    result = runner.invoke(args=["system", "init"])
    assert "Default users already exist" in result.output

    result = runner.invoke(args=["users", "list"])
    assert "admin" in result.output
    assert db_session.query(User).count() == 2


def test_cli_create_user(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["users", "create", "--username", "cashier", "--name", "Till", "--password", "till-pass-1"])
    assert result.exit_code == 0, result.output

    result = runner.invoke(args=["users", "create", "--username", "cashier", "--password", "till-pass-1"])
    assert result.exit_code != 0
    assert "already exists" in result.output
