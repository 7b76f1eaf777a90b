"""End-to-end API flows through the ASGI app."""
from uuid import uuid4

import pytest

from devconnector.config import get_settings
from devconnector.utils.security import create_access_token

PROFILE = "/api/profile"


async def _register(client, name="A", email="a@x.com", password="secret1") -> dict[str, str]:
    response = await client.post(
        "/api/users", json={"name": name, "email": email, "password": password}
    )
    assert response.status_code == 200, response.text
    return {"x-auth-token": response.json()["token"]}


def _messages(response) -> list[str]:
    return [e["msg"] for e in response.json()["errors"]]


class TestUsers:
    @pytest.mark.asyncio
    async def test_register_returns_token(self, client):
        headers = await _register(client)
        assert len(headers["x-auth-token"]) > 20

    @pytest.mark.asyncio
    async def test_register_validation_errors(self, client):
        response = await client.post("/api/users", json={"email": "bad", "password": "123"})
        assert response.status_code == 400
        assert sorted(_messages(response)) == [
            "Name is required",
            "Please enter a password with 6 or more characters",
            "Please include a valid email",
        ]
        params = {e["param"] for e in response.json()["errors"]}
        assert params == {"name", "email", "password"}

    @pytest.mark.asyncio
    async def test_duplicate_email_is_rejected_without_creating_a_user(self, client):
        await _register(client, name="First")
        response = await client.post(
            "/api/users", json={"name": "Second", "email": "A@X.com", "password": "secret2"}
        )
        assert response.status_code == 400
        assert response.json() == {"errors": [{"msg": "User already exists"}]}

        login = await client.post("/api/auth", json={"email": "a@x.com", "password": "secret2"})
        assert login.status_code == 400

    @pytest.mark.asyncio
    async def test_update_name(self, client):
        headers = await _register(client)
        response = await client.post("/api/users/name", json={"name": "Ada"}, headers=headers)
        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "Ada"
        assert body["email"] == "a@x.com"
        assert "password_hash" not in body
        assert body["avatar"].startswith("https://www.gravatar.com/avatar/")

    @pytest.mark.asyncio
    async def test_update_name_requires_name(self, client):
        headers = await _register(client)
        response = await client.post("/api/users/name", json={"name": ""}, headers=headers)
        assert response.status_code == 400
        assert _messages(response) == ["Name is required"]

    @pytest.mark.asyncio
    async def test_update_name_is_rate_limited(self, client, monkeypatch):
        monkeypatch.setattr(get_settings(), "rate_limit_api_requests", 2)
        headers = await _register(client)
        for _ in range(2):
            response = await client.post("/api/users/name", json={"name": "Ada"}, headers=headers)
            assert response.status_code == 200

        response = await client.post("/api/users/name", json={"name": "Ada"}, headers=headers)
        assert response.status_code == 429
        assert response.json() == {"msg": "Rate limit exceeded. Try again later."}


class TestAuth:
    @pytest.mark.asyncio
    async def test_login_and_current_user(self, client):
        await _register(client)
        response = await client.post("/api/auth", json={"email": "a@x.com", "password": "secret1"})
        assert response.status_code == 200
        token = response.json()["token"]

        me = await client.get("/api/auth", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["email"] == "a@x.com"

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, client):
        await _register(client)
        response = await client.post("/api/auth", json={"email": "a@x.com", "password": "nope123"})
        assert response.status_code == 400
        assert response.json() == {"errors": [{"msg": "Invalid Credentials"}]}

    @pytest.mark.asyncio
    async def test_missing_token(self, client):
        response = await client.get(f"{PROFILE}/me")
        assert response.status_code == 401
        assert response.json() == {"msg": "No token, authorization denied"}

    @pytest.mark.asyncio
    async def test_invalid_token(self, client):
        response = await client.get(f"{PROFILE}/me", headers={"x-auth-token": "garbage"})
        assert response.status_code == 401
        assert response.json() == {"msg": "Token is not valid"}


class TestProfile:
    @pytest.mark.asyncio
    async def test_register_create_profile_and_read_back(self, client):
        headers = await _register(client)
        created = await client.post(
            PROFILE, json={"status": "dev", "skills": "go,rust"}, headers=headers
        )
        assert created.status_code == 200, created.text
        body = created.json()
        assert body["skills"] == ["go", "rust"]
        assert body["status"] == "dev"
        assert body["user"]["name"] == "A"

        me = await client.get(f"{PROFILE}/me", headers=headers)
        assert me.status_code == 200
        assert me.json() == body

    @pytest.mark.asyncio
    async def test_me_without_profile(self, client):
        headers = await _register(client)
        response = await client.get(f"{PROFILE}/me", headers=headers)
        assert response.status_code == 400
        assert response.json() == {"msg": "There is no profile for this user"}

    @pytest.mark.asyncio
    async def test_status_and_skills_required(self, client):
        headers = await _register(client)
        response = await client.post(PROFILE, json={"company": "Acme"}, headers=headers)
        assert response.status_code == 400
        assert sorted(_messages(response)) == ["Skills are required", "Status is required"]

        me = await client.get(f"{PROFILE}/me", headers=headers)
        assert me.status_code == 400

    @pytest.mark.asyncio
    async def test_update_keeps_unsent_fields_and_merges_social(self, client):
        headers = await _register(client)
        await client.post(
            PROFILE,
            json={"status": "dev", "skills": "go", "company": "Acme", "twitter": "t"},
            headers=headers,
        )
        response = await client.post(
            PROFILE, json={"status": "X", "skills": "a", "linkedin": "l"}, headers=headers
        )
        body = response.json()
        assert body["status"] == "X"
        assert body["company"] == "Acme"
        assert body["social"] == {"twitter": "t", "linkedin": "l"}

    @pytest.mark.asyncio
    async def test_list_and_get_by_user(self, client):
        headers = await _register(client)
        created = (
            await client.post(PROFILE, json={"status": "dev", "skills": "go"}, headers=headers)
        ).json()

        listing = await client.get(PROFILE)
        assert listing.status_code == 200
        assert [p["id"] for p in listing.json()] == [created["id"]]

        user_id = created["user"]["id"]
        one = await client.get(f"{PROFILE}/user/{user_id}")
        assert one.status_code == 200
        assert one.json()["id"] == created["id"]

    @pytest.mark.asyncio
    async def test_get_by_unknown_or_malformed_user(self, client):
        for user_id in (str(uuid4()), "not-an-id"):
            response = await client.get(f"{PROFILE}/user/{user_id}")
            assert response.status_code == 400
            assert response.json() == {"msg": "Profile Not Found"}

    @pytest.mark.asyncio
    async def test_delete_account(self, client):
        headers = await _register(client)
        await client.post(PROFILE, json={"status": "dev", "skills": "go"}, headers=headers)

        response = await client.delete(PROFILE, headers=headers)
        assert response.status_code == 200
        assert response.json() == {"msg": "User deleted"}
        assert (await client.get(PROFILE)).json() == []

        login = await client.post("/api/auth", json={"email": "a@x.com", "password": "secret1"})
        assert login.status_code == 400

    @pytest.mark.asyncio
    async def test_delete_requires_auth(self, client):
        response = await client.delete(PROFILE)
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_token_of_deleted_account_cannot_recreate_profile(self, client):
        headers = await _register(client)
        await client.post(PROFILE, json={"status": "dev", "skills": "go"}, headers=headers)
        await client.delete(PROFILE, headers=headers)

        response = await client.post(
            PROFILE, json={"status": "ghost", "skills": "go"}, headers=headers
        )
        assert response.status_code == 400
        assert response.json() == {"msg": "User not found"}
        assert (await client.get(PROFILE)).json() == []


class TestExperience:
    @pytest.mark.asyncio
    async def test_add_update_delete_experience(self, client):
        headers = await _register(client)
        await client.post(
            PROFILE, json={"status": "dev", "skills": "go", "company": "Home"}, headers=headers
        )

        first = await client.put(
            f"{PROFILE}/experience",
            json={"title": "Dev", "company": "Acme", "from": "2018-01-01"},
            headers=headers,
        )
        assert first.status_code == 200, first.text
        second = await client.put(
            f"{PROFILE}/experience",
            json={"title": "Lead", "company": "Globex", "from": "2021-03-01", "current": True},
            headers=headers,
        )
        experience = second.json()["experience"]
        assert [e["title"] for e in experience] == ["Lead", "Dev"]
        assert experience[0]["current"] is True
        assert experience[1]["from"] == "2018-01-01"

        dev_id = experience[1]["id"]
        updated = await client.post(
            f"{PROFILE}/experience",
            json={
                "id": dev_id,
                "title": "Senior Dev",
                "company": "Acme",
                "from": "2018-01-01",
                "to": "2021-02-28",
            },
            headers=headers,
        )
        assert updated.status_code == 200, updated.text
        body = updated.json()
        assert [e["title"] for e in body["experience"]] == ["Lead", "Senior Dev"]
        assert body["experience"][1]["to"] == "2021-02-28"
        assert body["experience"][1]["id"] == dev_id
        assert body["company"] == "Home"

        removed = await client.delete(f"{PROFILE}/experience/{dev_id}", headers=headers)
        assert [e["title"] for e in removed.json()["experience"]] == ["Lead"]

    @pytest.mark.asyncio
    async def test_add_experience_validation(self, client):
        headers = await _register(client)
        response = await client.put(f"{PROFILE}/experience", json={}, headers=headers)
        assert response.status_code == 400
        assert sorted(_messages(response)) == [
            "Company is required",
            "From date is required",
            "Title is required",
        ]
        assert {e["param"] for e in response.json()["errors"]} == {"title", "company", "from"}

    @pytest.mark.asyncio
    async def test_add_experience_without_profile(self, client):
        headers = await _register(client)
        response = await client.put(
            f"{PROFILE}/experience",
            json={"title": "Dev", "company": "Acme", "from": "2018-01-01"},
            headers=headers,
        )
        assert response.status_code == 400
        assert response.json() == {"msg": "There is no profile for this user"}

    @pytest.mark.asyncio
    async def test_update_unknown_experience(self, client):
        headers = await _register(client)
        await client.post(PROFILE, json={"status": "dev", "skills": "go"}, headers=headers)
        response = await client.post(
            f"{PROFILE}/experience",
            json={"id": str(uuid4()), "title": "Dev", "company": "Acme", "from": "2018-01-01"},
            headers=headers,
        )
        assert response.status_code == 400
        assert response.json() == {"msg": "Experience not found"}

    @pytest.mark.asyncio
    async def test_token_for_deleted_user_has_no_profile(self, client):
        headers = {"x-auth-token": create_access_token(str(uuid4()))}
        response = await client.get(f"{PROFILE}/me", headers=headers)
        assert response.status_code == 400


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}
