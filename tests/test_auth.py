"""Tests for registration, login, token refresh, logout and the profile."""
from __future__ import annotations

import pytest

from src.auth import create_tokens, decode_token, hash_password, verify_password
from src.services.chat import chat_history
from tests.conftest import register


def test_password_hash_roundtrip():
    stored = hash_password("secret123")
    assert verify_password("secret123", stored)
    assert not verify_password("wrong", stored)
    assert not verify_password("secret123", "no-separator")


def test_tokens_decode():
    tokens = create_tokens("user-1")
    access = decode_token(tokens["access_token"])
    refresh = decode_token(tokens["refresh_token"])
    assert access["sub"] == "user-1" and access["type"] == "access"
    assert refresh["type"] == "refresh"
    assert access["jti"] != refresh["jti"]


def test_tampered_token_rejected():
    token = create_tokens("user-1")["access_token"]
    header, body, sig = token.split(".")
    assert decode_token(f"{header}.{body}x.{sig}") is None
    assert decode_token("not-a-token") is None
    assert decode_token("a.b.c") is None


@pytest.mark.asyncio
async def test_register(client):
    resp = await client.post("/api/register", json={
        "email": "Ana@Test.com", "password": "secret123", "firstName": "Ana",
    })
    assert resp.status_code == 201
    data = resp.json()
    assert data["user"]["email"] == "ana@test.com"
    assert data["user"]["firstName"] == "Ana"
    assert data["user"]["dailyCalories"] == 2000
    assert data["user"]["isProfileComplete"] is False
    assert data["token_type"] == "bearer"
    assert "password_hash" not in data["user"] and "passwordHash" not in data["user"]


@pytest.mark.asyncio
async def test_register_duplicate(client):
    await register(client, email="dup@test.com")
    resp = await client.post("/api/register", json={"email": "dup@test.com", "password": "secret123"})
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_register_weak_password(client):
    resp = await client.post("/api/register", json={"email": "a@test.com", "password": "123"})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_login(client):
    await register(client, email="login@test.com")
    resp = await client.post("/api/login", json={"email": "login@test.com", "password": "secret123"})
    assert resp.status_code == 200
    assert {"user", "access_token", "refresh_token", "token_type"} <= set(resp.json())

    resp = await client.post("/api/login", json={"email": "login@test.com", "password": "nope"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_get_user_both_paths(client, auth):
    for path in ("/api/user", "/api/auth/user"):
        resp = await client.get(path, headers=auth)
        assert resp.status_code == 200
        assert resp.json()["email"] == "user@test.com"


@pytest.mark.asyncio
async def test_get_user_requires_token(client):
    resp = await client.get("/api/user")
    assert resp.status_code == 401
    assert resp.json()["error"] == "Authentication required"


@pytest.mark.asyncio
async def test_refresh(client):
    data = await register(client)
    resp = await client.post("/api/auth/refresh", json={"refreshToken": data["refresh_token"]})
    assert resp.status_code == 200
    new_access = resp.json()["access_token"]
    assert (await client.get("/api/user", headers={"Authorization": f"Bearer {new_access}"})).status_code == 200

    # An access token is not a refresh token
    resp = await client.post("/api/auth/refresh", json={"refreshToken": data["access_token"]})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_logout_revokes_token(client, auth):
    resp = await client.post("/api/logout", headers=auth)
    assert resp.json() == {"success": True}
    assert (await client.get("/api/user", headers=auth)).status_code == 401


@pytest.mark.asyncio
async def test_logout_forgets_chat_history(client, auth):
    await client.post("/api/ai/chat", headers=auth, json={"message": "Quanta proteína tem um ovo?"})
    user_id = (await client.get("/api/user", headers=auth)).json()["id"]
    assert len(chat_history.get(user_id)) == 2

    await client.post("/api/logout", headers=auth)
    assert chat_history.get(user_id) == []
    assert user_id not in chat_history._history


@pytest.mark.asyncio
async def test_update_profile(client, auth):
    resp = await client.patch("/api/user", headers=auth, json={
        "firstName": "Bia", "notificationsEnabled": False,
    })
    assert resp.status_code == 200
    assert resp.json()["firstName"] == "Bia"
    assert resp.json()["notificationsEnabled"] is False


@pytest.mark.asyncio
async def test_goals_computed_from_profile(client, auth):
    resp = await client.patch("/api/user/goals", headers=auth, json={
        "weight": 70, "height": 175, "age": 25, "activityLevel": "moderate",
        "goal": "maintain", "isProfileComplete": True,
    })
    assert resp.status_code == 200
    user = resp.json()
    assert user["dailyCalories"] == 2594
    assert user["dailyProtein"] == 162
    assert user["dailyCarbs"] == 324
    assert user["dailyFat"] == 72
    assert user["isProfileComplete"] is True


@pytest.mark.asyncio
async def test_goals_explicit_macros(client, auth):
    resp = await client.patch("/api/user/goals", headers=auth, json={
        "dailyCalories": 1800, "dailyProtein": 140, "dailyCarbs": 180, "dailyFat": 60,
    })
    assert resp.status_code == 200
    assert resp.json()["dailyCalories"] == 1800


@pytest.mark.asyncio
async def test_goals_without_profile_or_macros(client, auth):
    resp = await client.patch("/api/user/goals", headers=auth, json={"goal": "lose"})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_goals_out_of_range(client, auth):
    resp = await client.patch("/api/user/goals", headers=auth, json={"weight": 20})
    assert resp.status_code == 422
    assert resp.json()["error"] == "validation_error"


@pytest.mark.asyncio
async def test_calculate_goals_preview(client):
    resp = await client.post("/api/user/calculate-goals", json={
        "weight": 59.5, "height": 175, "age": 25, "activityLevel": "moderate", "goal": "maintain",
    })
    assert resp.status_code == 200
    assert resp.json() == {
        "bmr": 1568.75, "tdee": 2431.6, "dailyCalories": 2432,
        "dailyProtein": 152, "dailyCarbs": 304, "dailyFat": 68,
    }
