import logging
from datetime import timedelta

import jwt
import pytest

from olms import config
from olms.auth import create_access_token, hash_password, verify_access_token, verify_password
from olms.dependencies import resolve_auth_context
from olms.models import Role
from olms.utils import utcnow


class Ident:
    def __init__(self, id, email, role):
        self.id, self.email, self.role = id, email, role


ADMIN = Ident("admin-1", "admin@zenith.com", Role.ADMIN)


def test_password_hashing():
    hashed = hash_password("secret")
    assert hashed != "secret"
    assert verify_password("secret", hashed)
    assert not verify_password("wrong", hashed)


def test_token_round_trip():
    identity = verify_access_token(create_access_token(ADMIN))
    assert identity == ("admin-1", "admin@zenith.com", "admin")


def test_token_expires_after_a_day():
    token = create_access_token(ADMIN)
    claims = jwt.decode(token, options={"verify_signature": False})
    assert claims["exp"] - claims["iat"] == 24 * 60 * 60


def test_expired_token_rejected(caplog):
    issued = utcnow() - timedelta(days=1, seconds=5)
    token = create_access_token(ADMIN, now=issued)
    with caplog.at_level(logging.WARNING, logger="olms.auth"):
        assert verify_access_token(token) is None
    assert "expired" in caplog.text


def test_foreign_signature_rejected(caplog):
    token = create_access_token(ADMIN)
    config.configure(jwt_secret="another-secret")
    with caplog.at_level(logging.WARNING, logger="olms.auth"):
        assert verify_access_token(token) is None
    assert "signature" in caplog.text


@pytest.mark.parametrize("payload", [
    {"sub": "admin-1", "role": "admin"},
    {"sub": "admin-1", "email": "", "role": "admin"},
])
def test_missing_claims_rejected(payload, caplog):
    now = int(utcnow().timestamp())
    token = jwt.encode({**payload, "iat": now, "exp": now + 60}, config.get_settings().jwt_secret, algorithm="HS256")
    with caplog.at_level(logging.WARNING, logger="olms.auth"):
        assert verify_access_token(token) is None
    assert "malformed" in caplog.text


def test_garbage_token_rejected():
    assert verify_access_token("not-a-jwt") is None
    assert verify_access_token("") is None


# -------------------- Stage A --------------------

@pytest.mark.parametrize("header", [None, "", "Token abc", "bearer abc", "Bearer ", "Bearer    ", "Bearer nope"])
def test_auth_context_anonymous(seeded, header):
    ctx = resolve_auth_context(seeded, header)
    assert ctx.authenticated is False
    assert ctx.user is None


def test_auth_context_unknown_user(seeded):
    token = create_access_token(Ident("ghost", "ghost@zenith.com", Role.ADMIN))
    assert resolve_auth_context(seeded, f"Bearer {token}").authenticated is False


def test_auth_context_loads_user_from_store(seeded):
    # the stored role wins over whatever the token claims
    token = create_access_token(Ident("customer-1", "customer@zenith.com", Role.ADMIN))
    ctx = resolve_auth_context(seeded, f"Bearer {token}")
    assert ctx.authenticated
    assert ctx.user.id == "customer-1"
    assert ctx.user.role == Role.CUSTOMER
    assert ctx.user.name == "Customer One"


# -------------------- through the API --------------------

def test_login_token_carries_seeded_role(client, seeded):
    for email, password, role in [
        ("admin@zenith.com", "admin123", "admin"),
        ("customer@zenith.com", "customer123", "customer"),
        ("factory@zenith.com", "factory123", "factory"),
    ]:
        r = client.post("/trpc/users.login", json={"email": email, "password": password})
        assert r.status_code == 200
        body = r.json()
        assert body["user"]["email"] == email
        assert body["user"]["role"] == role
        assert "password_hash" not in body["user"]
        assert verify_access_token(body["token"]).role == role


@pytest.mark.parametrize("payload", [
    {},
    {"email": "admin@zenith.com"},
    {"password": "admin123"},
    {"email": "", "password": "admin123"},
    {"json": {"email": "admin@zenith.com", "password": "admin123"}},
    ["admin@zenith.com", "admin123"],
])
def test_login_missing_credentials(client, seeded, payload):
    r = client.post("/trpc/users.login", json=payload)
    assert r.status_code == 400
    assert r.json()["code"] == "MISSING_CREDENTIALS"


@pytest.mark.parametrize("body", [b'{"email": "admin@zenith.com", ', b"", b"null", b"email=admin@zenith.com"])
def test_login_unreadable_body_is_missing_credentials(client, seeded, body):
    r = client.post("/trpc/users.login", content=body, headers={"Content-Type": "application/json"})
    assert r.status_code == 400
    assert r.json() == {"detail": "Email and password are required", "code": "MISSING_CREDENTIALS"}


@pytest.mark.parametrize("email,password", [
    ("admin@zenith.com", "wrong-password"),
    ("nobody@zenith.com", "admin123"),
])
def test_login_invalid_credentials(client, seeded, email, password):
    r = client.post("/trpc/users.login", json={"email": email, "password": password})
    assert r.status_code == 401
    assert r.json() == {"detail": "Invalid credentials", "code": "INVALID_CREDENTIALS"}


def test_expired_token_is_unauthenticated(client, seeded):
    token = create_access_token(ADMIN, expires_delta=-60)
    r = client.get("/trpc/orders.getAll", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401
    assert r.json()["code"] == "UNAUTHORIZED"


def test_me(client, customer_headers):
    r = client.get("/trpc/users.me", headers=customer_headers)
    assert r.status_code == 200
    assert r.json() == {"id": "customer-1", "name": "Customer One", "email": "customer@zenith.com", "role": "customer"}


def test_me_requires_login(client, seeded):
    r = client.get("/trpc/users.me")
    assert r.status_code == 401
    assert r.json()["code"] == "UNAUTHORIZED"
