from __future__ import annotations

import pytest

from trucktrack.config import settings as app_settings
from trucktrack.services import auth


@pytest.fixture
def users(db):
    auth.seed_users_if_empty(db)


class TestPasswords:
    def test_hash_and_verify(self):
        stored = auth.hash_password("secret", iterations=1000)
        assert stored.startswith("pbkdf2$1000$")
        assert auth.verify_password("secret", stored)
        assert not auth.verify_password("wrong", stored)

    def test_malformed_hash(self):
        assert not auth.verify_password("x", "not-a-hash")
        assert not auth.verify_password("x", "pbkdf2$abc$%%%$%%%")


class TestPermissions:
    def test_admin_can_do_everything(self):
        assert all(auth.permissions_for("admin").as_dict().values())

    def test_gestionnaire_cannot_touch_financial_records(self):
        perms = auth.permissions_for("gestionnaire")
        assert perms.can_create and perms.can_settle_invoice and perms.can_delete_non_financial
        assert not perms.can_modify_financial
        assert not perms.can_delete_financial

    def test_comptable_is_read_only(self):
        assert not any(auth.permissions_for("comptable").as_dict().values())

    def test_anonymous_depends_on_auth_flag(self, monkeypatch):
        assert all(auth.permissions_for(None).as_dict().values())
        monkeypatch.setattr(app_settings, "AUTH_REQUIRED", True)
        assert not any(auth.permissions_for(None).as_dict().values())


class TestLoginFlow:
    def test_login_me_logout(self, client, users):
        r = client.post("/api/auth/login", json={"login": "gestionnaire", "password": "gestion123"})
        assert r.status_code == 200
        body = r.json()
        assert body["user"]["role"] == "gestionnaire"
        assert body["permissions"]["can_modify_financial"] is False

        me = client.get("/api/auth/me").json()
        assert me["user"]["login"] == "gestionnaire"

        client.post("/api/auth/logout")
        assert client.get("/api/auth/me").json()["user"] is None

    def test_bad_credentials(self, client, users):
        r = client.post("/api/auth/login", json={"login": "admin", "password": "nope"})
        assert r.status_code == 401
        assert r.json() == {"ok": False, "error": "Identifiants invalides"}

    def test_role_enforced_on_routes(self, client, users):
        client.post("/api/auth/login", json={"login": "comptable", "password": "comptable123"})
        r = client.post("/api/third-parties", json={"nom": "Sabc", "type": "client"})
        assert r.status_code == 403
        assert r.json()["ok"] is False

    def test_anonymous_refused_when_auth_required(self, client, monkeypatch):
        monkeypatch.setattr(app_settings, "AUTH_REQUIRED", True)
        r = client.post("/api/third-parties", json={"nom": "Sabc", "type": "client"})
        assert r.status_code == 403
        assert client.get("/api/third-parties").status_code == 200
