from pydantic import BaseModel, EmailStr, Field

from vcards.schemas.common import UTCDateTime


class UserBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr


class UserCreate(UserBase):
    password: str = Field(..., min_length=8)


class UserUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: EmailStr | None = None
    password: str | None = Field(default=None, min_length=8)


class UserResponse(UserBase):
    id: int
    created_at: UTCDateTime
    updated_at: UTCDateTime

    class Config:
        from_attributes = True
