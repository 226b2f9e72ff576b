from pydantic import BaseModel, Field
from datetime import datetime
from typing import Literal

Role = Literal["admin", "manager", "user"]


class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=80)
    password: str = Field(..., min_length=8, max_length=72, description="Plain password (will be hashed). Minimum 8 characters.")


class AdminUserCreate(UserCreate):
    role: Role = "user"


class UserUpdate(BaseModel):
    role: Role | None = None
    password: str | None = Field(None, min_length=8, max_length=72)


class UserResponse(BaseModel):
    id: int
    username: str
    role: str
    created_at: datetime

    class Config:
        from_attributes = True
