"""Tests for access token handling and session subscriptions."""

from datetime import timedelta
from uuid import uuid4

import pytest
from jose import JWTError

from coursestream.auth.security import create_access_token, decode_access_token
from coursestream.auth.session import InMemorySessionProvider, Viewer


class TestAccessToken:
    """Tests for JWT access tokens."""

    def test_round_trip(self) -> None:
        user_id = str(uuid4())
        payload = decode_access_token(create_access_token({"sub": user_id, "role": "admin"}))

        assert payload["sub"] == user_id
        assert payload["type"] == "access"

    def test_expired_token(self) -> None:
        token = create_access_token({"sub": str(uuid4())}, expires_delta=timedelta(seconds=-1))
        with pytest.raises(JWTError):
            decode_access_token(token)

    def test_token_without_subject(self) -> None:
        with pytest.raises(JWTError):
            decode_access_token(create_access_token({"role": "student"}))

    def test_invalid_subject_is_unauthorized(self, client) -> None:
        token = create_access_token({"sub": "not-a-uuid"})
        response = client.get(
            "/v1/enrollments/me", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401


class TestSessionProvider:
    """Tests for auth-change subscriptions."""

    def test_subscribers_hear_changes_until_unsubscribed(self) -> None:
        provider = InMemorySessionProvider()
        seen = []
        subscription = provider.subscribe(seen.append)
        viewer = Viewer(id=uuid4())

        provider.set_user(viewer)
        provider.set_user(viewer)
        subscription.unsubscribe()
        provider.set_user(None)

        assert seen == [viewer]
        assert not subscription.active
        assert provider.subscriber_count == 0

    def test_subscription_context_manager(self) -> None:
        provider = InMemorySessionProvider()
        with provider.subscribe(lambda _: None):
            assert provider.subscriber_count == 1
        assert provider.subscriber_count == 0
