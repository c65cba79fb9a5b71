def test_register_success(client):
    # WHEN
    response = client.post("/api/v1/auth/register", json={
        "email": "New@Example.com",
        "password": "secret123",
        "full_name": "New Trader",
    })

    # THEN
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["data"]["email"] == "new@example.com"
    assert body["data"]["role"] == "user"
    assert "hashed_password" not in body["data"]


def test_register_duplicate_email(client):
    payload = {"email": "dup@example.com", "password": "secret123"}
    client.post("/api/v1/auth/register", json=payload)

    response = client.post("/api/v1/auth/register", json=payload)

    assert response.status_code == 400
    assert "already exists" in response.json()["detail"]


def test_register_validation_error(client):
    response = client.post("/api/v1/auth/register", json={"email": "not-an-email", "password": "1"})

    assert response.status_code == 422


def test_login_and_me(client):
    # GIVEN
    client.post("/api/v1/auth/register", json={"email": "me@example.com", "password": "secret123"})

    # WHEN
    login = client.post("/api/v1/auth/login", json={"email": "me@example.com", "password": "secret123"})
    token = login.json()["data"]["access_token"]
    me = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})

    # THEN
    assert login.status_code == 200
    assert login.json()["data"]["token_type"] == "bearer"
    assert login.json()["data"]["user"]["email"] == "me@example.com"
    assert me.status_code == 200
    assert me.json()["data"]["email"] == "me@example.com"
    assert me.json()["data"]["last_login"] is not None


def test_login_wrong_password(client):
    client.post("/api/v1/auth/register", json={"email": "me@example.com", "password": "secret123"})

    response = client.post("/api/v1/auth/login", json={"email": "me@example.com", "password": "wrong-password"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password"


def test_me_requires_token(client):
    assert client.get("/api/v1/auth/me").status_code in (401, 403)
    response = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
