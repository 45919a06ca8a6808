"""
Users API — User Endpoint Tests
================================

What:  End-to-end tests of the user routes through the HTTP layer.
How:   HTTPX AsyncClient → FastAPI app → UserRepository → in-memory collection.
       Storage failures use a repository built on an AsyncMock collection.
"""

import pytest
from bson import ObjectId
from pymongo.errors import PyMongoError

from userapi.database import get_user_repository
from userapi.services.user_repository import UserRepository


async def _create(client, payload):
    response = await client.post("/createUser", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["user"]


class TestCreateUser:

    @pytest.mark.asyncio
    async def test_create_returns_201_with_matching_fields(self, test_client, sample_user_payload):
        response = await test_client.post("/createUser", json=sample_user_payload)

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "User created successfully"
        user = body["user"]
        assert ObjectId.is_valid(user["id"])
        assert user["name"] == sample_user_payload["name"]
        assert user["email"] == sample_user_payload["email"]
        assert user["dateOfBirth"] == sample_user_payload["dateOfBirth"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("missing", ["name", "email", "dateOfBirth"])
    async def test_missing_field_returns_400_and_persists_nothing(
        self, test_client, users_collection, sample_user_payload, missing
    ):
        payload = dict(sample_user_payload)
        del payload[missing]

        response = await test_client.post("/createUser", json=payload)

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["message"] == "All fields are required."
        assert body["details"]["fields"] == {missing: "missing"}
        assert users_collection.documents == {}

    @pytest.mark.asyncio
    async def test_empty_body_returns_400(self, test_client, users_collection):
        response = await test_client.post("/createUser")

        assert response.status_code == 400
        assert users_collection.documents == {}

    @pytest.mark.asyncio
    async def test_non_object_body_returns_400(self, test_client):
        response = await test_client.post(
            "/createUser",
            content=b"not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_duplicate_email_conflicts_and_first_survives(self, test_client, sample_user_payload):
        first = await _create(test_client, sample_user_payload)

        second = await test_client.post(
            "/createUser",
            json=dict(sample_user_payload, name="Someone Else"),
        )

        assert second.status_code == 409
        assert second.json()["error"] == "conflict"
        users = (await test_client.get("/users")).json()
        assert users == [first]

    @pytest.mark.asyncio
    async def test_storage_failure_returns_opaque_500(self, app, test_client, mock_collection, sample_user_payload):
        mock_collection.insert_one.side_effect = PyMongoError("connection reset by 10.0.0.5")
        app.dependency_overrides[get_user_repository] = lambda: UserRepository(mock_collection)

        response = await test_client.post("/createUser", json=sample_user_payload)

        assert response.status_code == 500
        body = response.json()
        assert body["message"] == "Error creating user"
        assert "10.0.0.5" not in response.text


class TestListUsers:

    @pytest.mark.asyncio
    async def test_empty_list(self, test_client):
        response = await test_client.get("/users")

        assert response.status_code == 200
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_lists_exactly_the_created_users(self, test_client):
        submitted = [
            {"name": f"User {i}", "email": f"user{i}@example.com", "dateOfBirth": f"199{i}-0{i + 1}-15"}
            for i in range(4)
        ]
        for payload in submitted:
            await _create(test_client, payload)

        response = await test_client.get("/users")

        assert response.status_code == 200
        users = response.json()
        assert len(users) == len(submitted)
        listed = sorted(
            ({k: u[k] for k in ("name", "email", "dateOfBirth")} for u in users),
            key=lambda u: u["email"],
        )
        assert listed == submitted

    @pytest.mark.asyncio
    async def test_storage_failure_returns_500(self, app, test_client, mock_collection):
        mock_collection.find.side_effect = PyMongoError("boom")
        app.dependency_overrides[get_user_repository] = lambda: UserRepository(mock_collection)

        response = await test_client.get("/users")

        assert response.status_code == 500
        assert response.json()["message"] == "Error retrieving users"


class TestUpdateUser:

    @pytest.mark.asyncio
    async def test_malformed_id_returns_400(self, test_client):
        response = await test_client.put("/updateUser/not-an-id", json={"name": "X"})

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid user ID format"

    @pytest.mark.asyncio
    async def test_unknown_id_returns_404(self, test_client):
        response = await test_client.put(f"/updateUser/{ObjectId()}", json={"name": "X"})

        assert response.status_code == 404
        assert response.json()["message"] == "User not found"

    @pytest.mark.asyncio
    async def test_partial_update(self, test_client, sample_user_payload):
        user = await _create(test_client, sample_user_payload)

        response = await test_client.put(
            f"/updateUser/{user['id']}",
            json={"dateOfBirth": "1992-05-15"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "User updated successfully"
        assert body["user"] == dict(user, dateOfBirth="1992-05-15")

    @pytest.mark.asyncio
    async def test_blank_field_returns_400(self, test_client, sample_user_payload):
        user = await _create(test_client, sample_user_payload)

        response = await test_client.put(f"/updateUser/{user['id']}", json={"name": ""})

        assert response.status_code == 400
        assert response.json()["details"]["fields"] == {"name": "missing"}

    @pytest.mark.asyncio
    async def test_email_taken_returns_409(self, test_client, sample_user_payload):
        await _create(test_client, sample_user_payload)
        other = await _create(
            test_client,
            {"name": "Jane Doe", "email": "janedoe@example.com", "dateOfBirth": "1992-05-15"},
        )

        response = await test_client.put(
            f"/updateUser/{other['id']}",
            json={"email": sample_user_payload["email"]},
        )

        assert response.status_code == 409


class TestDeleteUser:

    @pytest.mark.asyncio
    async def test_unknown_id_returns_404(self, test_client):
        response = await test_client.delete(f"/deleteUser/{ObjectId()}")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_malformed_id_returns_404(self, test_client):
        response = await test_client.delete("/deleteUser/does-not-exist")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_existing_returns_200_and_removes(self, test_client, sample_user_payload):
        user = await _create(test_client, sample_user_payload)

        response = await test_client.delete(f"/deleteUser/{user['id']}")

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "User deleted successfully"
        assert body["user"] == user
        users = (await test_client.get("/users")).json()
        assert all(u["id"] != user["id"] for u in users)

    @pytest.mark.asyncio
    async def test_second_delete_returns_404(self, test_client, sample_user_payload):
        user = await _create(test_client, sample_user_payload)
        await test_client.delete(f"/deleteUser/{user['id']}")

        response = await test_client.delete(f"/deleteUser/{user['id']}")

        assert response.status_code == 404
