from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


Role = Literal["admin", "user"]


# --- User ---

class UserBase(BaseModel):
    username: str = Field(min_length=3, max_length=20)
    email: str = Field(min_length=6, max_length=255)
    role: Role = "user"
    phone_number: str | None = Field(None, min_length=6, max_length=32)


class UserCreate(UserBase):
    password: str = Field(min_length=1, max_length=72)


class UserUpdate(BaseModel):
    username: str | None = Field(None, min_length=3, max_length=20)
    email: str | None = Field(None, min_length=6, max_length=255)
    password: str | None = Field(None, min_length=1, max_length=72)
    role: Role | None = None
    phone_number: str | None = Field(None, min_length=6, max_length=32)
    model_config = ConfigDict(extra="forbid")


class LoginRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1)


class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    role: str
    phone_number: str | None = None
    created_at: datetime | None = None
    model_config = ConfigDict(from_attributes=True)


class UserId(BaseModel):
    id: int


class UserEnvelope(BaseModel):
    data: UserResponse


class AuthResponse(UserEnvelope):
    token: str


class UserPage(BaseModel):
    data: list[UserResponse]
    total: int
    totalPages: int


class Message(BaseModel):
    msg: str


# --- Comment ---

class AuthorSummary(BaseModel):
    id: int
    username: str
    email: str | None = None


class CommentCreate(BaseModel):
    content: str = Field(min_length=1)
    parent_id: int | None = None


class CommentResponse(BaseModel):
    id: int
    content: str
    likes: int
    reply_count: int
    parent_id: int | None
    post_id: int
    user: AuthorSummary | None = None
    created_at: datetime | None = None


# --- Post ---

class PostResponse(BaseModel):
    id: int
    title: str
    slug: str
    content: str
    media: list[str] = []
    author_id: int
    author: AuthorSummary | None = None
    comments: list[CommentResponse] = []
    created_at: datetime | None = None
