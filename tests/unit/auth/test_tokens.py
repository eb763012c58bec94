"""
Tests for bearer token issuing and verification.
"""
import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient
from types import SimpleNamespace

from app.auth import Principal, get_current_user, require_admin
from app.auth.tokens import create_token, verify_token

SECRET = "unit-secret"


class TestTokens:

    def test_round_trip(self):
        token = create_token("player-7", "admin", SECRET, ttl_minutes=5)

        principal = verify_token(token, SECRET)

        assert principal == Principal(id="player-7", role="admin")
        assert principal.is_admin

    def test_wrong_secret(self):
        token = create_token("player-7", "user", SECRET, ttl_minutes=5)
        assert verify_token(token, "other-secret") is None

    def test_tampered_role(self):
        token = create_token("player-7", "user", SECRET, ttl_minutes=5)
        principal_id, _, exp, sig = token.split(":")
        assert verify_token(f"{principal_id}:admin:{exp}:{sig}", SECRET) is None

    def test_expired(self):
        token = create_token("player-7", "user", SECRET, ttl_minutes=-1)
        assert verify_token(token, SECRET) is None

    @pytest.mark.parametrize("token", ["", "garbage", "a:b:c", "a:user:notanumber:sig"])
    def test_malformed(self, token):
        assert verify_token(token, SECRET) is None

    def test_rejects_unknown_role(self):
        with pytest.raises(ValueError):
            create_token("player-7", "superuser", SECRET, ttl_minutes=5)

    def test_rejects_separator_in_id(self):
        with pytest.raises(ValueError):
            create_token("a:b", "user", SECRET, ttl_minutes=5)


@pytest.fixture
def guarded_client():
    app = FastAPI()
    app.state.settings = SimpleNamespace(secret_key=SECRET)

    @app.get("/me")
    async def me(user: Principal = Depends(get_current_user)):
        return {"id": user.id, "role": user.role}

    @app.get("/admin")
    async def admin_only(user: Principal = Depends(require_admin)):
        return {"id": user.id}

    return TestClient(app)


class TestDependencies:

    def test_missing_header(self, guarded_client):
        response = guarded_client.get("/me")
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    def test_wrong_scheme(self, guarded_client):
        token = create_token("player-7", "user", SECRET, ttl_minutes=5)
        response = guarded_client.get("/me", headers={"Authorization": f"Basic {token}"})
        assert response.status_code == 401

    def test_valid_token(self, guarded_client):
        token = create_token("player-7", "user", SECRET, ttl_minutes=5)
        response = guarded_client.get("/me", headers={"Authorization": f"Bearer {token}"})
        assert response.json() == {"id": "player-7", "role": "user"}

    def test_admin_guard(self, guarded_client):
        user_token = create_token("player-7", "user", SECRET, ttl_minutes=5)
        admin_token = create_token("boss", "admin", SECRET, ttl_minutes=5)

        assert guarded_client.get(
            "/admin", headers={"Authorization": f"Bearer {user_token}"}
        ).status_code == 403
        assert guarded_client.get(
            "/admin", headers={"Authorization": f"Bearer {admin_token}"}
        ).json() == {"id": "boss"}
