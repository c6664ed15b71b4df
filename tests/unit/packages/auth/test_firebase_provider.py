"""Unit tests for the Firebase identity provider."""

from unittest.mock import MagicMock

import pytest
from fastapi import HTTPException
from firebase_admin import auth as firebase_auth

from packages.auth.providers.firebase_provider import FirebaseIdentityProvider, token_cache_key
from packages.auth.providers.models import IdentityProvider, NewAccount


@pytest.fixture
def provider():
    """Provider with a stand-in app; firebase_admin is never initialized."""
    instance = FirebaseIdentityProvider.__new__(FirebaseIdentityProvider)
    instance.app = MagicMock()
    return instance


@pytest.fixture
def verify_id_token(monkeypatch):
    mock = MagicMock(return_value={"uid": "user-1", "email": "user@example.com"})
    monkeypatch.setattr(firebase_auth, "verify_id_token", mock)
    return mock


def test_token_cache_key_hides_token():
    key = token_cache_key("secret-token")

    assert key.startswith("auth:token:")
    assert "secret-token" not in key
    assert key == token_cache_key("secret-token")
    assert key != token_cache_key("other-token")


@pytest.mark.asyncio
class TestVerifyToken:
    async def test_claims_are_cached(self, provider, verify_id_token, memory_cache):
        first = await provider.verify_token("token-1")
        second = await provider.verify_token("token-1")

        assert first.uid == second.uid == "user-1"
        assert second.email == "user@example.com"
        verify_id_token.assert_called_once()
        assert await memory_cache.get(token_cache_key("token-1")) == {
            "uid": "user-1",
            "email": "user@example.com",
        }

    async def test_expired_token(self, provider, monkeypatch):
        def expired(token, app=None):
            raise firebase_auth.ExpiredIdTokenError("expired", cause=None)

        monkeypatch.setattr(firebase_auth, "verify_id_token", expired)

        with pytest.raises(HTTPException) as exc_info:
            await provider.verify_token("token-1")

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Firebase token has expired"

    async def test_missing_uid(self, provider, monkeypatch):
        monkeypatch.setattr(firebase_auth, "verify_id_token", MagicMock(return_value={}))

        with pytest.raises(HTTPException) as exc_info:
            await provider.verify_token("token-1")

        assert exc_info.value.status_code == 401

    async def test_failures_are_not_cached(self, provider, monkeypatch, memory_cache):
        monkeypatch.setattr(
            firebase_auth, "verify_id_token", MagicMock(side_effect=RuntimeError("boom"))
        )

        with pytest.raises(HTTPException):
            await provider.verify_token("token-1")

        assert await memory_cache.get(token_cache_key("token-1")) is None


@pytest.mark.asyncio
class TestAccounts:
    async def test_create_user(self, provider, monkeypatch):
        record = MagicMock(uid="fb-1", email="new@example.com", display_name="New Person")
        create = MagicMock(return_value=record)
        monkeypatch.setattr(firebase_auth, "create_user", create)

        account = await provider.create_user(
            NewAccount(email="new@example.com", password="secret123", display_name="New Person")
        )

        assert account.uid == "fb-1"
        assert create.call_args.kwargs["email_verified"] is True

    async def test_delete_missing_user_is_quiet(self, provider, monkeypatch):
        def delete_user(uid, app=None):
            raise firebase_auth.UserNotFoundError("gone")

        monkeypatch.setattr(firebase_auth, "delete_user", delete_user)

        await provider.delete_user("fb-1")

    def test_provider_name(self, provider):
        assert provider.get_provider_name() == IdentityProvider.FIREBASE
