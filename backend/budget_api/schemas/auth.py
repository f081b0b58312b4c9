"""Authentication schemas."""

from pydantic import AliasChoices, BaseModel, EmailStr, Field, field_validator


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    full_name: str = Field(validation_alias=AliasChoices("full_name", "fullName"))

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Full name is required")
        return v.strip()


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)


class RefreshRequest(BaseModel):
    refresh_token: str | None = None  # falls back to the refresh cookie


class UserInfo(BaseModel):
    id: str
    email: str | None = None
    full_name: str = ""


class SessionInfo(BaseModel):
    access_token: str
    refresh_token: str
    expires_in: int | None = None
    expires_at: int | None = None


class LoginResponse(BaseModel):
    success: bool = True
    user: UserInfo
    session: SessionInfo


class RegisteredUser(BaseModel):
    id: str
    email: str | None = None


class RegisterResponse(BaseModel):
    success: bool = True
    message: str
    user: RegisteredUser
