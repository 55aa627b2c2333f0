from stockroom.domain.models import ChallengePurpose

PASSWORD = "P@ssw0rd1"


def register(client, name="Alice", email="alice@example.com", password=PASSWORD):
    return client.post(
        "/api/auth/register/initiate",
        json={"name": name, "email": email, "password": password},
    )


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"ok": True}


def test_register_verify_login_flow(client, delivery):
    res = client.post("/api/auth/email", json={"email": "alice@example.com"})
    assert res.json() == {"available": True, "isPending": False}

    res = register(client)
    assert res.status_code == 201, res.text
    user_id = res.json()["userId"]

    res = client.post("/api/auth/email", json={"email": "alice@example.com"})
    assert res.json() == {"available": False, "isPending": True}

    code = delivery.last_code("alice@example.com", ChallengePurpose.REGISTER)
    res = client.post("/api/auth/register/verify", json={"userId": user_id, "otp": code})
    assert res.status_code == 200, res.text
    assert res.json()["user"]["isVerified"] is True

    res = client.post("/api/auth/login", json={"email": "alice@example.com", "password": PASSWORD})
    assert res.status_code == 200, res.text
    assert res.json()["user"]["email"] == "alice@example.com"
    assert "accessToken" in res.cookies

    res_me = client.get("/api/auth/me")
    assert res_me.status_code == 200, res_me.text
    assert res_me.json()["user"]["id"] == user_id


def test_unverified_login_asks_for_verification_without_session(client):
    user_id = register(client).json()["userId"]

    res = client.post("/api/auth/login", json={"email": "alice@example.com", "password": PASSWORD})

    assert res.status_code == 200, res.text
    assert res.json() == {
        "userId": user_id,
        "email": "alice@example.com",
        "action": "complete-verification",
    }
    assert "accessToken" not in res.cookies
    assert client.get("/api/auth/me").status_code == 401


def test_register_errors(client):
    res = register(client, password="weak")
    assert res.status_code == 400
    assert "Password must be" in res.json()["error"]

    register(client)
    res = register(client)
    assert res.status_code == 409
    assert res.json()["error"] == "This email has a pending verification. Please check your inbox"

    res = client.post("/api/auth/register/initiate", json={"email": "nope"})
    assert res.status_code == 400
    assert "error" in res.json()


def test_wrong_code_reports_attempts_left(client):
    user_id = register(client).json()["userId"]

    res = client.post("/api/auth/register/verify", json={"userId": user_id, "otp": "not-it"})

    assert res.status_code == 400
    assert res.json()["error"] == "The code you entered is incorrect. 4 attempt(s) left"


def test_resend_respects_cooldown(client, delivery, clock):
    register(client)

    res = client.post("/api/auth/register/resend", json={"email": "alice@example.com"})
    assert res.status_code == 429
    assert res.headers["Retry-After"] == "60"

    clock.advance(seconds=61)
    res = client.post("/api/auth/register/resend", json={"email": "alice@example.com"})
    assert res.status_code == 200, res.text
    assert len(delivery.sent) == 2

    res = client.post("/api/auth/register/resend", json={"email": "ghost@example.com"})
    assert res.status_code == 200
    assert res.json() == {}


def test_invalid_login(client, signup):
    signup("Alice", "alice@example.com")
    client.post("/api/auth/logout")

    res = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "Wr0ngPass"})

    assert res.status_code == 401
    assert res.json() == {"error": "Invalid email or password"}


def test_forgot_password_flow(client, delivery, signup):
    user = signup("Alice", "alice@example.com")
    client.post("/api/auth/logout")

    res = client.post("/api/auth/forgot/initiate", json={"email": "alice@example.com"})
    assert res.status_code == 200, res.text
    assert res.json()["userId"] == user["id"]
    assert "action" not in res.json()

    code = delivery.last_code("alice@example.com", ChallengePurpose.FORGOT_PASSWORD)
    res = client.post("/api/auth/forgot/reset", json={"userId": user["id"], "password": "N3wPassword"})
    assert res.status_code == 400
    assert res.json() == {"error": "Verification code is required"}

    res = client.post("/api/auth/forgot/verify", json={"userId": user["id"], "otp": code})
    assert res.status_code == 200, res.text

    res = client.post(
        "/api/auth/forgot/reset",
        json={"userId": user["id"], "password": "N3wPassword", "otp": code},
    )
    assert res.status_code == 200, res.text
    assert res.json() == {"message": "Your password has been reset successfully"}

    res = client.post(
        "/api/auth/forgot/reset",
        json={"userId": user["id"], "password": "An0therPass", "otp": code},
    )
    assert res.status_code == 403

    res = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "N3wPassword"})
    assert res.status_code == 200, res.text


def test_verified_reset_needs_the_code(client, delivery, signup):
    user = signup("Alice", "alice@example.com")
    client.post("/api/auth/logout")
    client.post("/api/auth/forgot/initiate", json={"email": "alice@example.com"})
    code = delivery.last_code("alice@example.com", ChallengePurpose.FORGOT_PASSWORD)
    assert client.post(
        "/api/auth/forgot/verify", json={"userId": user["id"], "otp": code}
    ).status_code == 200

    res = client.post("/api/auth/forgot/reset", json={"userId": user["id"], "password": "Attacker9x"})
    assert res.status_code == 400

    wrong = "000000" if code != "000000" else "111111"
    res = client.post(
        "/api/auth/forgot/reset",
        json={"userId": user["id"], "password": "Attacker9x", "otp": wrong},
    )
    assert res.status_code == 400

    res = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "Attacker9x"})
    assert res.status_code == 401
    res = client.post("/api/auth/login", json={"email": "alice@example.com", "password": PASSWORD})
    assert res.status_code == 200, res.text


def test_forgot_unknown_email(client):
    res = client.post("/api/auth/forgot/initiate", json={"email": "ghost@example.com"})
    assert res.status_code == 404
    assert res.json() == {"error": "No account found with this email"}


def test_google_login_then_set_password(client, google):
    google.add("tok-gina", "gina@example.com", name="Gina")

    res = client.post("/api/auth/google", json={"token": "tok-gina"})
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["action"] == "set-password"
    assert body["user"]["hasPassword"] is False
    assert client.get("/api/auth/me").status_code == 200

    res = client.post("/api/auth/forgot/reset", json={"userId": body["userId"], "password": "Ch00sePass"})
    assert res.status_code == 200, res.text

    client.post("/api/auth/logout")
    res = client.post("/api/auth/google", json={"token": "tok-gina"})
    assert "action" not in res.json()
    assert res.json()["user"]["hasPassword"] is True


def test_set_password_requires_own_session(client, google, signup):
    google.add("tok-gina", "gina@example.com", name="Gina")
    gina_id = client.post("/api/auth/google", json={"token": "tok-gina"}).json()["userId"]

    client.cookies.clear()
    res = client.post("/api/auth/forgot/reset", json={"userId": gina_id, "password": "Attacker9x"})
    assert res.status_code == 400

    signup("Mallory", "mallory@example.com")
    res = client.post("/api/auth/forgot/reset", json={"userId": gina_id, "password": "Attacker9x"})
    assert res.status_code == 400

    res = client.post("/api/auth/login", json={"email": "gina@example.com", "password": "Attacker9x"})
    assert res.status_code == 401


def test_google_login_rejects_bad_credential(client):
    res = client.post("/api/auth/google", json={"token": "forged"})
    assert res.status_code == 401
    assert res.json() == {"error": "Invalid Google credential"}


def test_logout_clears_session(client, signup):
    signup("Alice", "alice@example.com")
    assert client.get("/api/auth/me").status_code == 200

    res = client.post("/api/auth/logout")
    assert res.status_code == 200

    res = client.get("/api/auth/me")
    assert res.status_code == 401
    assert res.json() == {"error": "Unauthorized"}


def test_tampered_cookie_is_rejected(client, signup):
    signup("Alice", "alice@example.com")
    client.cookies.clear()
    client.cookies.set("accessToken", "not-a-jwt")

    res = client.get("/api/auth/me")

    assert res.status_code == 401
    assert res.json() == {"error": "Invalid or expired token"}
