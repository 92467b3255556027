from __future__ import annotations

from models.profile import Profile


def _login(api, username, password, panel="client", **extra):
    body = {"username": username, "password": password, "panelType": panel, **extra}
    return api.post("/auth/login", json=body)


def _bearer(resp):
    return {"Authorization": f"Bearer {resp.json()['session']['access_token']}"}


def test_health(api):
    assert api.get("/health").json() == {"status": "ok"}


def test_login_success_payload(api):
    resp = _login(api, "teste", "2026", deviceInfo="Chrome / Windows")
    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    assert data["user"]["role"] == "client"
    assert data["user"]["username"] == "TESTE"
    assert data["user"]["email"] == "teste@francgympro.local"
    assert data["license"]["type"] == "demo"
    assert data["license"]["status"] == "active"
    assert data["license"]["time_remaining_ms"] == 30 * 60 * 1000
    assert set(data["session"]) == {"access_token", "refresh_token", "session_token"}


def test_panel_defaults_to_client(api):
    resp = api.post("/auth/login", json={"username": "teste", "password": "2026"})
    assert resp.status_code == 200


def test_unknown_account_is_401(api):
    resp = _login(api, "fantasma", "nada")
    assert resp.status_code == 401
    data = resp.json()
    assert data["success"] is False
    assert "não cadastrado" in data["error"]


def test_wrong_demo_password_is_401(api):
    resp = _login(api, "teste", "0000")
    assert resp.status_code == 401
    assert resp.json()["error"] == "Senha incorreta. Verifique e tente novamente."


def test_panel_denied_is_403(api):
    resp = _login(api, "teste", "2026", panel="admin")
    assert resp.status_code == 403
    assert "painel de Cliente" in resp.json()["error"]


def test_blocked_license_is_403_with_license_state(api, make_regular):
    make_regular("bruno", "K-B", status="blocked")
    resp = _login(api, "bruno", "K-B")
    assert resp.status_code == 403
    data = resp.json()
    assert "bloqueada" in data["error"]
    assert data["license"]["status"] == "blocked"
    assert data["license"]["time_remaining_ms"] == 0


def test_empty_credentials_are_rejected_without_a_500(api):
    resp = _login(api, "", "")
    assert resp.status_code == 401


def test_unknown_panel_is_a_validation_error(api):
    resp = _login(api, "teste", "2026", panel="kitchen")
    assert resp.status_code == 422
    assert resp.json() == {"success": False, "error": "Requisição de login inválida. Verifique os campos enviados."}


def test_null_credentials_fail_with_the_login_error_shape(api):
    for body in ({"username": None, "password": "2026"}, {"username": "teste", "password": None}):
        resp = api.post("/auth/login", json=body)
        assert resp.status_code == 422
        data = resp.json()
        assert data["success"] is False
        assert "detail" not in data


def test_other_endpoints_keep_the_default_validation_body(api, master_headers):
    resp = api.post("/admin/pre-generated", json={"account_type": "client", "count": 0}, headers=master_headers)
    assert resp.status_code == 422
    assert "detail" in resp.json()


def test_me_hydrates_profile_role_and_license(api):
    login = _login(api, "teste", "2026")
    resp = api.get("/auth/me", headers=_bearer(login))
    assert resp.status_code == 200
    data = resp.json()
    assert data["user"]["profile_id"] == login.json()["user"]["profile_id"]
    assert data["user"]["role"] == "client"
    assert data["license"]["type"] == "demo"


def test_me_repairs_a_missing_profile_link(api, db):
    login = _login(api, "teste", "2026")
    profile = db.get(Profile, login.json()["user"]["profile_id"])
    profile.user_id = None
    db.commit()

    resp = api.get("/auth/me", headers=_bearer(login))
    assert resp.status_code == 200

    db.expire_all()
    assert db.get(Profile, profile.id).user_id == login.json()["user"]["id"]


def test_me_without_profile_is_403(api, db):
    login = _login(api, "teste", "2026")
    profile = db.get(Profile, login.json()["user"]["profile_id"])
    profile.user_id = None
    profile.username = "OUTRO"
    profile.email = "outro@francgympro.local"
    db.commit()

    resp = api.get("/auth/me", headers=_bearer(login))
    assert resp.status_code == 403


def test_me_requires_a_token(api):
    assert api.get("/auth/me").status_code == 401
    assert api.get("/auth/me", headers={"Authorization": "Bearer nope"}).status_code == 401


def test_refresh_issues_a_new_pair(api):
    login = _login(api, "teste", "2026")
    refresh_token = login.json()["session"]["refresh_token"]

    resp = api.post("/auth/refresh", json={"refresh_token": refresh_token})
    assert resp.status_code == 200
    data = resp.json()
    assert data["token_type"] == "bearer"
    assert api.get("/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"}).status_code == 200


def test_access_token_cannot_be_used_to_refresh(api):
    login = _login(api, "teste", "2026")
    resp = api.post("/auth/refresh", json={"refresh_token": login.json()["session"]["access_token"]})
    assert resp.status_code == 401


def test_refresh_token_is_not_an_access_token(api):
    login = _login(api, "teste", "2026")
    headers = {"Authorization": f"Bearer {login.json()['session']['refresh_token']}"}
    assert api.get("/auth/me", headers=headers).status_code == 401


def test_second_device_invalidates_the_first_session(api):
    first = _login(api, "teste", "2026", deviceInfo="celular")
    first_token = first.json()["session"]["session_token"]

    resp = api.post("/auth/session/validate", json={"session_token": first_token}, headers=_bearer(first))
    assert resp.json() == {"valid": True, "error": None}

    second = _login(api, "teste", "2026", deviceInfo="notebook")
    resp = api.post("/auth/session/validate", json={"session_token": first_token}, headers=_bearer(first))
    assert resp.json()["valid"] is False
    assert "outro dispositivo" in resp.json()["error"]

    second_token = second.json()["session"]["session_token"]
    resp = api.post("/auth/session/validate", json={"session_token": second_token}, headers=_bearer(second))
    assert resp.json()["valid"] is True


def test_logout_drops_the_session(api):
    login = _login(api, "teste", "2026")
    token = login.json()["session"]["session_token"]

    assert api.post("/auth/logout", json={"session_token": token}, headers=_bearer(login)).status_code == 200
    resp = api.post("/auth/session/validate", json={"session_token": token}, headers=_bearer(login))
    assert resp.json()["valid"] is False
