"""
Tests for signup, login, token refresh and bearer-token authentication.

These tests verify:
  - Signup creates a USER and rejects duplicate logins and emails
  - Login returns an access token and a refresh token
  - Unknown login, wrong password and blocked user get the same 401
  - Refreshing reuses the refresh token: each call returns a new, valid
    access token and the stored record stays active
  - Unknown, expired and deactivated refresh tokens are rejected
  - An access token must name an existing user whose login matches
  - Raw refresh tokens are never stored
"""

import uuid
from datetime import timedelta

import pytest
from sqlalchemy import select

from bankcards.clock import utcnow
from bankcards.exceptions import (
    InvalidCredentialsError,
    InvalidTokenError,
    RefreshTokenNotFoundError,
    RolesEmptyError,
    TokenExpiredError,
    TokenNotActiveError,
    UserNotActiveError,
)
from bankcards.models.refresh_token import RefreshToken
from bankcards.models.user import RoleType
from bankcards.security import create_access_token, hash_refresh_secret
from bankcards.services import auth_service, token_service


class TestSignup:
    """Tests for POST /auth/signup."""

    async def test_signup_success(self, client):
        response = await client.post(
            "/auth/signup",
            json={"login": "alice", "email": "alice@example.com", "password": "SecurePass123!"},
        )
        assert response.status_code == 201
        data = response.json()
        assert data["login"] == "alice"
        assert data["email"] == "alice@example.com"
        assert data["roles"] == ["USER"]
        assert "password" not in data
        assert "hashed_password" not in data

    async def test_signup_duplicate_login(self, client):
        body = {"login": "alice", "email": "alice@example.com", "password": "SecurePass123!"}
        await client.post("/auth/signup", json=body)

        response = await client.post(
            "/auth/signup", json={**body, "email": "other@example.com"}
        )
        assert response.status_code == 409
        assert response.json()["error_type"] == "duplicate_user"

    async def test_signup_duplicate_email(self, client):
        body = {"login": "alice", "email": "alice@example.com", "password": "SecurePass123!"}
        await client.post("/auth/signup", json=body)

        response = await client.post("/auth/signup", json={**body, "login": "alice2"})
        assert response.status_code == 409

    async def test_signup_short_password(self, client):
        response = await client.post(
            "/auth/signup",
            json={"login": "alice", "email": "alice@example.com", "password": "short"},
        )
        assert response.status_code == 422

    async def test_password_is_hashed(self, db_session):
        user = await auth_service.signup(db_session, "alice", "alice@example.com", "SecurePass123!")
        assert user.hashed_password != "SecurePass123!"
        assert user.hashed_password.startswith("$argon2")


class TestLogin:
    """Tests for POST /auth/login."""

    async def test_login_success(self, client, db_session, make_user):
        await make_user("alice")
        await db_session.commit()

        response = await client.post(
            "/auth/login", json={"login": "alice", "password": "SecurePass123!"}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["access_token"]
        assert data["refresh_token"]

    async def test_access_token_claims(self, db_session, make_user):
        alice = await make_user("alice", roles=(RoleType.USER, RoleType.ADMIN))
        tokens = await auth_service.login(db_session, "alice", "SecurePass123!")

        claims = token_service.validate_access_token(tokens.access_token, expected_login="alice")
        assert claims["sub"] == "alice"
        assert claims["id"] == str(alice.id)
        assert claims["email"] == "alice@example.com"
        assert claims["roles"] == ["ADMIN", "USER"]

    async def test_wrong_password(self, client, db_session, make_user):
        await make_user("alice")
        await db_session.commit()

        response = await client.post(
            "/auth/login", json={"login": "alice", "password": "WrongPass999!"}
        )
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    async def test_same_error_for_every_failure(self, db_session, make_user):
        """Unknown login, wrong password and blocked user are indistinguishable."""
        await make_user("alice")
        await make_user("blocked", active=False)

        details = set()
        for login, password in [
            ("nobody", "SecurePass123!"),
            ("alice", "WrongPass999!"),
            ("blocked", "SecurePass123!"),
        ]:
            with pytest.raises(InvalidCredentialsError) as exc_info:
                await auth_service.login(db_session, login, password)
            details.add(exc_info.value.detail)
        assert len(details) == 1

    async def test_refresh_token_stored_as_hash(self, db_session, make_user):
        await make_user("alice")
        tokens = await auth_service.login(db_session, "alice", "SecurePass123!")

        result = await db_session.execute(select(RefreshToken))
        record = result.scalar_one()
        assert record.token_hash == hash_refresh_secret(tokens.refresh_token)
        assert record.token_hash != tokens.refresh_token
        assert record.is_active

    async def test_each_login_gets_its_own_refresh_token(self, db_session, make_user):
        await make_user("alice")
        first = await auth_service.login(db_session, "alice", "SecurePass123!")
        second = await auth_service.login(db_session, "alice", "SecurePass123!")

        assert first.refresh_token != second.refresh_token
        assert await auth_service.refresh(db_session, first.refresh_token)
        assert await auth_service.refresh(db_session, second.refresh_token)

    async def test_user_without_roles_gets_no_token(self, db_session, make_user):
        await make_user("ghost", roles=())
        with pytest.raises(RolesEmptyError):
            await auth_service.login(db_session, "ghost", "SecurePass123!")


class TestRefresh:
    """Tests for auth_service.refresh and POST /auth/refresh."""

    async def test_refresh_reuse(self, db_session, make_user):
        """One refresh token, two refreshes: two distinct valid tokens, record untouched."""
        await make_user("alice")
        tokens = await auth_service.login(db_session, "alice", "SecurePass123!")

        first = await auth_service.refresh(db_session, tokens.refresh_token)
        second = await auth_service.refresh(db_session, tokens.refresh_token)

        assert first != second
        assert token_service.validate_access_token(first)["login"] == "alice"
        assert token_service.validate_access_token(second)["login"] == "alice"

        record = await token_service.find_refresh_token(db_session, tokens.refresh_token)
        assert record.is_active

    async def test_unknown_token(self, db_session):
        with pytest.raises(RefreshTokenNotFoundError):
            await auth_service.refresh(db_session, "not-a-real-token")

    async def test_expired_token(self, db_session, make_user):
        await make_user("alice")
        tokens = await auth_service.login(db_session, "alice", "SecurePass123!")
        record = await token_service.find_refresh_token(db_session, tokens.refresh_token)
        record.expires_at = utcnow() - timedelta(seconds=1)
        await db_session.flush()

        with pytest.raises(TokenExpiredError):
            await auth_service.refresh(db_session, tokens.refresh_token)

    async def test_deactivated_token(self, db_session, make_user):
        await make_user("alice")
        tokens = await auth_service.login(db_session, "alice", "SecurePass123!")
        record = await token_service.find_refresh_token(db_session, tokens.refresh_token)
        record.is_active = False
        await db_session.flush()

        with pytest.raises(TokenNotActiveError):
            await auth_service.refresh(db_session, tokens.refresh_token)

    async def test_blocked_user_cannot_refresh(self, db_session, make_user):
        alice = await make_user("alice")
        tokens = await auth_service.login(db_session, "alice", "SecurePass123!")
        alice.is_active = False
        await db_session.flush()

        with pytest.raises(UserNotActiveError):
            await auth_service.refresh(db_session, tokens.refresh_token)

    async def test_refresh_endpoint(self, client, db_session, make_user):
        await make_user("alice")
        await db_session.commit()
        login = await client.post(
            "/auth/login", json={"login": "alice", "password": "SecurePass123!"}
        )
        refresh_token = login.json()["refresh_token"]

        first = await client.post("/auth/refresh", json={"refresh_token": refresh_token})
        second = await client.post("/auth/refresh", json={"refresh_token": refresh_token})
        assert first.status_code == 200
        assert second.status_code == 200
        assert first.json()["access_token"] != second.json()["access_token"]

        response = await client.get(
            "/cards", headers={"Authorization": f"Bearer {second.json()['access_token']}"}
        )
        assert response.status_code == 200

    async def test_refresh_endpoint_unknown_token(self, client):
        response = await client.post("/auth/refresh", json={"refresh_token": "nope"})
        assert response.status_code == 404
        assert response.json()["error_type"] == "refresh_token_not_found"


class TestAuthenticate:
    """Tests for resolving a bearer token to a user."""

    async def test_valid_token(self, db_session, make_user):
        alice = await make_user("alice")
        tokens = await auth_service.login(db_session, "alice", "SecurePass123!")

        user = await auth_service.authenticate(db_session, tokens.access_token)
        assert user.id == alice.id

    async def test_login_claim_must_match_user(self, db_session, make_user):
        alice = await make_user("alice")
        await make_user("bob")
        forged = create_access_token(
            {"sub": "bob", "id": str(alice.id), "login": "bob", "roles": ["USER"]}
        )
        with pytest.raises(InvalidTokenError):
            await auth_service.authenticate(db_session, forged)

    async def test_unknown_user_id(self, db_session):
        token = create_access_token(
            {"sub": "ghost", "id": str(uuid.uuid4()), "login": "ghost", "roles": ["USER"]}
        )
        with pytest.raises(InvalidTokenError):
            await auth_service.authenticate(db_session, token)

    async def test_expired_token(self, db_session, make_user):
        alice = await make_user("alice")
        token = create_access_token(
            {"sub": "alice", "id": str(alice.id), "login": "alice", "roles": ["USER"]},
            expires_delta=timedelta(seconds=-1),
        )
        with pytest.raises(TokenExpiredError):
            await auth_service.authenticate(db_session, token)

    async def test_missing_claims(self, db_session):
        token = create_access_token({"sub": "alice"})
        with pytest.raises(InvalidTokenError):
            await auth_service.authenticate(db_session, token)

    async def test_expected_login_mismatch(self, db_session, make_user):
        await make_user("alice")
        tokens = await auth_service.login(db_session, "alice", "SecurePass123!")
        with pytest.raises(InvalidTokenError):
            token_service.validate_access_token(tokens.access_token, expected_login="bob")

    async def test_no_token_returns_401(self, client):
        response = await client.get("/cards")
        assert response.status_code == 401

    async def test_garbage_token_returns_401(self, client):
        response = await client.get("/cards", headers={"Authorization": "Bearer not.a.jwt"})
        assert response.status_code == 401
        assert response.json()["error_type"] == "invalid_token"
