"""
Users API — User Repository (Data Access)
==========================================

What:  Create, list, update and delete users in a MongoDB collection.
Why:   Keeps every storage call and every storage-error translation in one
       class, so routes only deal with HTTP and exceptions.
How:   Wraps an injected AsyncCollection. Each public method validates its
       input, performs exactly one collection call, and returns a
       UserResponse or raises an application exception.
Who:   Constructed per request by userapi.database.get_user_repository.

Error translation:
    bad input / malformed id      → ValidationError
    no matching document          → NotFoundError
    DuplicateKeyError (email)     → ConflictError
    any other PyMongoError        → StorageError (details logged, not returned)

No retries, no transactions: a failed call is reported to the client as is.
The one exception is the unique email index, which writes keep trying to
create until it exists.
"""

import logging
from datetime import datetime, time, timezone
from typing import Any, Dict, List, Mapping, Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import DuplicateKeyError, PyMongoError

from userapi.exceptions import ConflictError, NotFoundError, StorageError, ValidationError
from userapi.schemas.user import UserResponse
from userapi.validation import (
    INVALID,
    USER_FIELDS,
    is_valid_object_id,
    parse_date_of_birth,
    validate_user_fields,
)

logger = logging.getLogger(__name__)


def _to_document_fields(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Convert validated JSON fields into their stored form.

    BSON has no date-only type, so dateOfBirth is stored as UTC midnight.
    """
    document = {}
    for field in USER_FIELDS:
        if field not in payload:
            continue
        value = payload[field]
        if field == "dateOfBirth":
            value = datetime.combine(parse_date_of_birth(value), time.min, tzinfo=timezone.utc)
        document[field] = value
    return document


def _validation_message(errors: Mapping[str, str]) -> str:
    missing = [f for f, reason in errors.items() if reason != INVALID]
    if missing:
        return "All fields are required."
    return "Invalid value for field(s): " + ", ".join(errors)


class UserRepository:
    """
    Data access for the users collection.

    The collection is passed in rather than looked up globally, and the
    repository is cheap to construct. When `email_index` is given (an
    EmailIndex from userapi.database), writes wait for the unique email
    index first, so a duplicate can never slip in before it exists.
    """

    def __init__(self, collection: AsyncCollection, email_index: Any = None):
        self._collection = collection
        self._email_index = email_index

    async def _require_email_index(self) -> None:
        if self._email_index is not None:
            await self._email_index.ensure()

    async def create(
        self,
        name: Any = None,
        email: Any = None,
        date_of_birth: Any = None,
    ) -> UserResponse:
        """
        Insert a new user.

        Raises:
            ValidationError: A field is missing, blank or unparseable (→ 400)
            ConflictError:   Email already used by another user (→ 409)
            StorageError:    Insert failed for any other reason (→ 500)
        """
        payload = {"name": name, "email": email, "dateOfBirth": date_of_birth}
        errors = validate_user_fields(payload)
        if errors:
            raise ValidationError(message=_validation_message(errors), fields=errors)

        document = _to_document_fields(payload)
        await self._require_email_index()
        try:
            result = await self._collection.insert_one(document)
        except DuplicateKeyError:
            raise ConflictError(field="email", value=document["email"])
        except PyMongoError as e:
            logger.error("Database error creating user: %s", str(e), exc_info=True)
            raise StorageError(
                message="Error creating user",
                context={"error_type": type(e).__name__},
            )

        document["_id"] = result.inserted_id
        logger.info("User created: %s", result.inserted_id)
        return UserResponse.from_document(document)

    async def get_all(self) -> List[UserResponse]:
        """
        Return every user in storage order. No pagination or filtering.

        Raises:
            StorageError: Query failed (→ 500)
        """
        try:
            documents = await self._collection.find({}).to_list(length=None)
        except PyMongoError as e:
            logger.error("Database error listing users: %s", str(e), exc_info=True)
            raise StorageError(
                message="Error retrieving users",
                context={"error_type": type(e).__name__},
            )
        return [UserResponse.from_document(doc) for doc in documents]

    async def update(self, user_id: str, fields: Optional[Mapping[str, Any]]) -> UserResponse:
        """
        Apply a partial update.

        Only keys in USER_FIELDS that are present in `fields` are written;
        omitted keys keep their stored value and unknown keys are ignored.
        Supplying null or a blank string for a field is rejected, since every
        field is required on the stored record.

        Raises:
            ValidationError: Malformed id, or a supplied field is blank/invalid (→ 400)
            NotFoundError:   No user with this id (→ 404)
            ConflictError:   New email belongs to another user (→ 409)
            StorageError:    Update failed for any other reason (→ 500)
        """
        if not is_valid_object_id(user_id):
            raise ValidationError(message="Invalid user ID format", context={"id": user_id})

        fields = fields or {}
        supplied = [field for field in USER_FIELDS if field in fields]
        errors = validate_user_fields(fields, required=supplied)
        if errors:
            raise ValidationError(
                message="Invalid value for field(s): " + ", ".join(errors),
                fields=errors,
            )

        changes = _to_document_fields({field: fields[field] for field in supplied})
        if changes:
            await self._require_email_index()
        oid = ObjectId(user_id)
        try:
            if changes:
                document = await self._collection.find_one_and_update(
                    {"_id": oid},
                    {"$set": changes},
                    return_document=ReturnDocument.AFTER,
                )
            else:
                document = await self._collection.find_one({"_id": oid})
        except DuplicateKeyError:
            raise ConflictError(field="email", value=changes.get("email"))
        except PyMongoError as e:
            logger.error("Database error updating user %s: %s", user_id, str(e), exc_info=True)
            raise StorageError(
                message="Error updating user",
                context={"user_id": user_id, "error_type": type(e).__name__},
            )

        if document is None:
            raise NotFoundError(resource="User", resource_id=user_id)

        logger.info("User updated: %s (%s)", user_id, ", ".join(changes) or "no changes")
        return UserResponse.from_document(document)

    async def delete(self, user_id: str) -> UserResponse:
        """
        Remove a user and return the document as it was before deletion.

        A malformed id cannot match any document, so it is reported as
        NotFoundError rather than a validation failure.

        Raises:
            NotFoundError: No user with this id (→ 404)
            StorageError:  Delete failed (→ 500)
        """
        if not is_valid_object_id(user_id):
            raise NotFoundError(resource="User", resource_id=user_id)

        try:
            document = await self._collection.find_one_and_delete({"_id": ObjectId(user_id)})
        except PyMongoError as e:
            logger.error("Database error deleting user %s: %s", user_id, str(e), exc_info=True)
            raise StorageError(
                message="Error deleting user",
                context={"user_id": user_id, "error_type": type(e).__name__},
            )

        if document is None:
            raise NotFoundError(resource="User", resource_id=user_id)

        logger.info("User deleted: %s", user_id)
        return UserResponse.from_document(document)
