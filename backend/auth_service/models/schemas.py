"""Pydantic request/response models. Field names are camelCase on the wire."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Auth requests ---
# Required fields are optional here so the handlers can answer with their own
# 400 messages instead of a generic validation error.

class RegisterRequest(ApiModel):
    email: str | None = None
    password: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    role: str | None = None
    business_name: str | None = None

class LoginRequest(ApiModel):
    email: str | None = None
    password: str | None = None
    remember_me: bool | None = False

class RefreshRequest(ApiModel):
    refresh_token: str | None = None

class OAuthSyncRequest(ApiModel):
    id: str | None = None
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    avatar_url: str | None = None

class ProfileUpdateRequest(ApiModel):
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    business_name: str | None = None
    avatar_url: str | None = None
    role: str | None = None


# --- Auth responses ---

class UserProjection(ApiModel):
    """Account view safe to hand to the client: never carries the password hash."""

    id: UUID
    email: str
    first_name: str
    last_name: str
    phone: str | None = None
    role: str
    business_name: str | None = None
    is_admin: bool

    @classmethod
    def from_user(cls, user) -> "UserProjection":
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            phone=user.phone,
            role=user.role,
            business_name=user.business_name,
            is_admin=bool(user.is_admin),
        )

class SessionResponse(ApiModel):
    success: bool = True
    session_token: str
    refresh_token: str | None = None
    user: UserProjection

class RefreshResponse(ApiModel):
    success: bool = True
    session_token: str
    refresh_token: str | None = None

class UserResponse(ApiModel):
    success: bool = True
    user: UserProjection

class MessageResponse(ApiModel):
    success: bool = True
    message: str

class OAuthSyncResponse(ApiModel):
    success: bool = True
    message: str
    user_id: UUID


# --- Admin ---

class AdminUserView(UserProjection):
    status: str
    created_at: datetime | None = None
    last_login: datetime | None = None

    @classmethod
    def from_user(cls, user) -> "AdminUserView":
        return cls(
            **UserProjection.from_user(user).model_dump(),
            status=user.status,
            created_at=user.created_at,
            last_login=user.last_login,
        )

class AdminUserListResponse(ApiModel):
    success: bool = True
    users: list[AdminUserView]

class AdminUserUpdateRequest(ApiModel):
    status: str | None = None
    role: str | None = None

class AdminUserResponse(ApiModel):
    success: bool = True
    user: AdminUserView
