# Pydantic schemas for user-related requests/responses
# fastapi-users provides the base schemas; the service adds nothing on top yet.

from uuid import UUID

from fastapi_users import schemas


class UserRead(schemas.BaseUser[UUID]):
    pass


class UserCreate(schemas.BaseUserCreate):
    pass


class UserUpdate(schemas.BaseUserUpdate):
    pass
