import app.routers.auth as auth_mod


class _User:
    def __init__(
        self,
        *,
        user_id="u1",
        email="u@example.com",
        full_name="Una User",
        role="jobSeeker",
        is_active=True,
        password_hash="hashed",
    ):
        self.id = user_id
        self.email = email
        self.full_name = full_name
        self.role = role
        self.is_active = is_active
        self.password_hash = password_hash

    @property
    def normalized_role(self):
        return "jobSeeker" if self.role == "employee" else self.role


def _register_payload(**overrides):
    payload = {
        "email": "new@example.com",
        "password": "password123",
        "confirm_password": "password123",
        "full_name": "New Person",
        "role": "employer",
    }
    payload.update(overrides)
    return payload


def test_register_rejects_existing_email(monkeypatch, client):
    monkeypatch.setattr(auth_mod, "get_by_email", lambda db, email: _User())
    resp = client.post("/auth/register", json=_register_payload(email="u@example.com"))
    assert resp.status_code == 400
    assert "already" in resp.json()["detail"].lower()


def test_register_success(monkeypatch, client):
    created = {}

    def _create(db, email, pw, full_name, role):
        created.update(email=email, full_name=full_name, role=role)
        return _User(user_id="new1", email=email, full_name=full_name, role=role)

    monkeypatch.setattr(auth_mod, "get_by_email", lambda db, email: None)
    monkeypatch.setattr(auth_mod, "create_user", _create)
    monkeypatch.setattr(auth_mod, "create_access_token", lambda uid, role=None: f"token-{uid}-{role}")
    resp = client.post("/auth/register", json=_register_payload())
    assert resp.status_code == 200
    body = resp.json()
    assert body["access_token"] == "token-new1-employer"
    assert body["user"]["role"] == "employer"
    assert created == {"email": "new@example.com", "full_name": "New Person", "role": "employer"}


def test_register_maps_legacy_role(monkeypatch, client):
    monkeypatch.setattr(auth_mod, "get_by_email", lambda db, email: None)
    monkeypatch.setattr(
        auth_mod,
        "create_user",
        lambda db, email, pw, full_name, role: _User(user_id="n2", email=email, role=role),
    )
    monkeypatch.setattr(auth_mod, "create_access_token", lambda uid, role=None: "tok")
    resp = client.post("/auth/register", json=_register_payload(role="employee"))
    assert resp.status_code == 200
    assert resp.json()["user"]["role"] == "jobSeeker"


def test_register_validation_errors(client):
    assert client.post("/auth/register", json=_register_payload(role="admin")).status_code == 422
    assert client.post("/auth/register", json=_register_payload(confirm_password="different1")).status_code == 422
    assert client.post("/auth/register", json=_register_payload(password="short", confirm_password="short")).status_code == 422
    assert client.post("/auth/register", json=_register_payload(full_name="   ")).status_code == 422


def test_register_unexpected_failure_is_500(monkeypatch, client):
    monkeypatch.setattr(auth_mod, "get_by_email", lambda db, email: (_ for _ in ()).throw(RuntimeError("db down")))
    resp = client.post("/auth/register", json=_register_payload())
    assert resp.status_code == 500
    assert resp.json()["detail"] == "Registration failed"


def test_login_invalid_credentials(monkeypatch, client):
    monkeypatch.setattr(auth_mod, "get_by_email", lambda db, email: None)
    resp = client.post("/auth/login", json={"email": "x@example.com", "password": "bad"})
    assert resp.status_code == 401


def test_login_wrong_password(monkeypatch, client):
    monkeypatch.setattr(auth_mod, "get_by_email", lambda db, email: _User())
    monkeypatch.setattr(auth_mod, "verify_password", lambda plain, hashed: False)
    resp = client.post("/auth/login", json={"email": "u@example.com", "password": "bad"})
    assert resp.status_code == 401


def test_login_disabled_user(monkeypatch, client):
    monkeypatch.setattr(auth_mod, "get_by_email", lambda db, email: _User(is_active=False))
    monkeypatch.setattr(auth_mod, "verify_password", lambda plain, hashed: True)
    resp = client.post("/auth/login", json={"email": "x@example.com", "password": "good"})
    assert resp.status_code == 403


def test_login_success_normalizes_legacy_role(monkeypatch, client):
    user = _User(role="employee", password_hash="normal-hash")
    monkeypatch.setattr(auth_mod, "get_by_email", lambda db, email: user)
    monkeypatch.setattr(auth_mod, "verify_password", lambda plain, hashed: hashed == "normal-hash")
    monkeypatch.setattr(auth_mod, "create_access_token", lambda uid, role=None: "normal-token")
    resp = client.post("/auth/login", json={"email": "u@example.com", "password": "good"})
    assert resp.status_code == 200
    assert resp.json()["access_token"] == "normal-token"
    assert resp.json()["user"]["role"] == "jobSeeker"


def test_me_returns_current_user(client, stub_user):
    resp = client.get("/auth/me")
    assert resp.status_code == 200
    assert resp.json() == {
        "id": stub_user.id,
        "email": stub_user.email,
        "full_name": stub_user.full_name,
        "role": "jobSeeker",
    }
