from conftest import PASSWORD, auth


def _login(client, email, password=PASSWORD):
    return client.post("/api/v1/auth/login", json={"email": email, "password": password})


def test_login_and_me(client, recipient):
    r = _login(client, " John.Doe@mtn.cm ")
    assert r.status_code == 200, r.text
    tokens = r.json()
    assert tokens["token_type"] == "bearer"
    assert tokens["user"]["role"] == "recipient"

    me = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {tokens['access_token']}"})
    assert me.status_code == 200
    assert me.json()["email"] == "john.doe@mtn.cm"


def test_login_wrong_password(client, recipient):
    r = _login(client, "john.doe@mtn.cm", "wrong-password")
    assert r.status_code == 401
    assert r.json()["code"] == "UNAUTHORIZED"
    assert _login(client, "nobody@mtn.cm").status_code == 401


def test_refresh_rotates(client, recipient):
    first = _login(client, "john.doe@mtn.cm").json()
    r = client.post("/api/v1/auth/refresh", json={"refresh_token": first["refresh_token"]})
    assert r.status_code == 200
    assert r.json()["refresh_token"] != first["refresh_token"]
    reused = client.post("/api/v1/auth/refresh", json={"refresh_token": first["refresh_token"]})
    assert reused.status_code == 401


def test_logout_revokes_refresh(client, recipient):
    tokens = _login(client, "john.doe@mtn.cm").json()
    r = client.post("/api/v1/auth/logout", json={"refresh_token": tokens["refresh_token"]})
    assert r.status_code == 204
    r = client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert r.status_code == 401


def test_bad_tokens(client):
    assert client.get("/api/v1/auth/me").status_code == 401
    assert client.get("/api/v1/auth/me", headers={"Authorization": "Bearer nope"}).status_code == 401
    assert client.get("/api/v1/auth/me", headers={"Authorization": "Token x"}).status_code == 401


def test_users_admin_only(client, admin, recipient):
    body = {"name": "Alice Johnson", "email": "alice.johnson@mtn.cm", "role": "recipient", "password": "password123"}
    assert client.post("/api/v1/users/", json=body, headers=auth(recipient)).status_code == 403
    r = client.post("/api/v1/users/", json=body, headers=auth(admin))
    assert r.status_code == 201
    assert r.json()["email"] == "alice.johnson@mtn.cm"
    assert client.post("/api/v1/users/", json=body, headers=auth(admin)).status_code == 409

    listed = client.get("/api/v1/users/", params={"role": "recipient"}, headers=auth(admin)).json()
    assert {u["email"] for u in listed} == {"john.doe@mtn.cm", "alice.johnson@mtn.cm"}


def test_inactive_user_rejected(client, recipient, admin):
    r = client.patch(f"/api/v1/users/{recipient.id}", json={"status": "disabled"}, headers=auth(admin))
    assert r.status_code == 200
    assert client.get("/api/v1/auth/me", headers=auth(recipient)).status_code == 401
