from pydantic import BaseModel, Field, field_validator

from ..core.clock import Timestamp
from ..core.roles import Role, parse_role


class Comment(BaseModel):
    id: str
    ticket_id: str
    author_id: str
    author_email: str
    author_role: Role | None = None
    content: str
    created_at: Timestamp
    # internal notes are only visible to employees and admins
    is_internal: bool = False

    @field_validator("author_role", mode="before")
    @classmethod
    def unknown_role_is_none(cls, v):
        return parse_role(v)


class CommentCreateIn(BaseModel):
    content: str = Field(default="", max_length=10000)
    is_internal: bool = False


class CommentOut(BaseModel):
    comment: Comment


class CommentListOut(BaseModel):
    comments: list[Comment]
