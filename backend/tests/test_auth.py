import pytest

from shopledger.errors import ConflictError, ValidationError
from shopledger.services import auth_service


@pytest.fixture
def clerk(db_session):
    return auth_service.create_user("clerk", "counter-secret", "Front Desk", rounds=4)


def test_hash_and_verify_password():
    hashed = auth_service.hash_password("long-enough", rounds=4)

    assert hashed != "long-enough"
    assert auth_service.verify_password("long-enough", hashed)
    assert not auth_service.verify_password("wrong-guess", hashed)


def test_verify_password_with_malformed_hash():
    assert auth_service.verify_password("anything", "not-a-bcrypt-hash") is False


def test_short_password_is_rejected(db_session):
    with pytest.raises(ValidationError):
        auth_service.create_user("shorty", "abc", rounds=4)


def test_duplicate_username(clerk):
    with pytest.raises(ConflictError):
        auth_service.create_user("clerk", "another-secret", rounds=4)


def test_authenticate_sets_last_login(clerk):
    assert clerk.last_login_at is None

    user = auth_service.authenticate("clerk", "counter-secret")

    assert user is not None
    assert user.last_login_at is not None
    assert auth_service.authenticate("clerk", "nope-nope") is None
    assert auth_service.authenticate("ghost", "counter-secret") is None


def test_inactive_user_cannot_log_in(clerk, db_session):
    clerk.is_active = False
    db_session.commit()

    assert auth_service.authenticate("clerk", "counter-secret") is None


def test_seed_default_users_is_idempotent(db_session):
    assert auth_service.seed_default_users() == ["admin", "user"]
    assert auth_service.seed_default_users() == []


def test_login_route(client, clerk):
    resp = client.post("/api/auth/login", json={"username": "clerk", "password": "counter-secret"})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["success"] is True
    assert body["user"]["username"] == "clerk"
    assert "password_hash" not in body["user"]


def test_login_route_rejects_bad_credentials(client, clerk):
    resp = client.post("/api/auth/login", json={"username": "clerk", "password": "wrong-password"})
    assert resp.status_code == 401
    assert resp.get_json()["success"] is False


@pytest.mark.parametrize("payload", [{}, {"username": "clerk"}, {"password": "x"}, {"username": "  ", "password": "x"}])
def test_login_route_requires_both_fields(client, db_session, payload):
    resp = client.post("/api/auth/login", json=payload)
    assert resp.status_code == 400
