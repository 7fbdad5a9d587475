CREDENTIALS = {"email": "carol@example.com", "password": "correct horse battery"}


def test_signup_then_login(client):
    r = client.post("/auth/signup", json=CREDENTIALS)
    assert r.status_code == 200
    assert r.json()["email"] == CREDENTIALS["email"]

    r = client.post("/auth/login", json=CREDENTIALS)
    assert r.status_code == 200
    token = r.json()["access_token"]
    assert r.json()["token_type"] == "bearer"

    r = client.get("/conversations/", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.json() == []


def test_duplicate_signup(client):
    client.post("/auth/signup", json=CREDENTIALS)
    r = client.post("/auth/signup", json=CREDENTIALS)
    assert r.status_code == 400


def test_wrong_password(client):
    client.post("/auth/signup", json=CREDENTIALS)
    r = client.post("/auth/login", json={**CREDENTIALS, "password": "wrong password"})
    assert r.status_code == 401


def test_token_for_deleted_user_is_rejected(client, db, user, headers):
    db.delete(user)
    db.commit()
    assert client.get("/documents", headers=headers).status_code == 401
