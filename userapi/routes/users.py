"""
Users API — User Route Handlers
================================

What:  POST /createUser, GET /users, PUT /updateUser/{id}, DELETE /deleteUser/{id}.
How:   Each handler reads the body or path, makes one repository call and
       wraps the result. Failures are exceptions turned into status codes by
       the handlers registered in main.py.

Request bodies are accepted as raw JSON objects so that missing fields are
reported by the validation layer with a 400, not by FastAPI with a 422.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends

from userapi.database import get_user_repository
from userapi.schemas.user import UserMutationResponse, UserResponse
from userapi.services.user_repository import UserRepository

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Users"])


@router.post(
    "/createUser",
    status_code=201,
    response_model=UserMutationResponse,
    summary="Create a new user",
)
async def create_user(
    payload: Optional[Dict[str, Any]] = Body(default=None),
    repository: UserRepository = Depends(get_user_repository),
) -> UserMutationResponse:
    """
    Create a user from `{name, email, dateOfBirth}`.

    Error responses (handled by global exception handlers):
        HTTP 400: A field is missing or malformed
        HTTP 409: Email already registered
        HTTP 500: Storage failure
    """
    payload = payload or {}
    user = await repository.create(
        name=payload.get("name"),
        email=payload.get("email"),
        date_of_birth=payload.get("dateOfBirth"),
    )
    return UserMutationResponse(message="User created successfully", user=user)


@router.get(
    "/users",
    response_model=List[UserResponse],
    summary="List all users",
)
async def list_users(
    repository: UserRepository = Depends(get_user_repository),
) -> List[UserResponse]:
    return await repository.get_all()


@router.put(
    "/updateUser/{user_id}",
    response_model=UserMutationResponse,
    summary="Update a user",
)
async def update_user(
    user_id: str,
    payload: Optional[Dict[str, Any]] = Body(default=None),
    repository: UserRepository = Depends(get_user_repository),
) -> UserMutationResponse:
    """
    Change only the fields present in the body.

    Error responses:
        HTTP 400: Malformed id, or a supplied field is blank/invalid
        HTTP 404: No user with this id
        HTTP 409: New email already registered
        HTTP 500: Storage failure
    """
    user = await repository.update(user_id, payload)
    return UserMutationResponse(message="User updated successfully", user=user)


@router.delete(
    "/deleteUser/{user_id}",
    response_model=UserMutationResponse,
    summary="Delete a user",
)
async def delete_user(
    user_id: str,
    repository: UserRepository = Depends(get_user_repository),
) -> UserMutationResponse:
    """Delete permanently; the response carries the removed record."""
    user = await repository.delete(user_id)
    return UserMutationResponse(message="User deleted successfully", user=user)
