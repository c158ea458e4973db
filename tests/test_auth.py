"""Tests for bearer token validation."""

from __future__ import annotations

import uuid

import pytest

from perftrack.auth.dependencies import TokenValidationError, validate_token
from tests.conftest import TEST_JWT_SECRET, make_token


class TestValidateToken:
    def test_valid_token(self, fake_settings, user_id):
        claims = validate_token(make_token(str(user_id), tz="Europe/Prague"), fake_settings)
        assert claims["sub"] == str(user_id)
        assert claims["tz"] == "Europe/Prague"

    def test_expired_token(self, fake_settings, user_id):
        token = make_token(str(user_id), expires_in=-60)
        with pytest.raises(TokenValidationError):
            validate_token(token, fake_settings)

    def test_wrong_audience(self, fake_settings, user_id):
        token = make_token(str(user_id), audience="some-other-api")
        with pytest.raises(TokenValidationError):
            validate_token(token, fake_settings)

    def test_wrong_secret(self, fake_settings, user_id):
        token = make_token(str(user_id), secret=TEST_JWT_SECRET + "-tampered")
        with pytest.raises(TokenValidationError):
            validate_token(token, fake_settings)

    def test_subject_must_be_uuid(self, fake_settings):
        with pytest.raises(TokenValidationError):
            validate_token(make_token("not-a-uuid"), fake_settings)


async def test_expired_token_is_401(client, user_id):
    headers = {"Authorization": f"Bearer {make_token(str(user_id), expires_in=-60)}"}
    response = await client.get("/api/v1/goals", headers=headers)
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


async def test_token_for_new_user_sees_no_goals(client):
    headers = {"Authorization": f"Bearer {make_token(str(uuid.uuid4()))}"}
    response = await client.get("/api/v1/goals", headers=headers)
    assert response.status_code == 200
    assert response.json() == []
