from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from ..core.clock import Timestamp
from .comment import Comment
from .ticket_status import TicketPriority, TicketStatus


class Ticket(BaseModel):
    id: str
    title: str
    description: str
    status: TicketStatus
    priority: TicketPriority
    category: str
    customer_id: str
    customer_email: str
    assigned_to: str | None = None
    assigned_to_email: str | None = None
    created_by: str
    created_at: Timestamp
    updated_at: Timestamp
    due_date: Timestamp | None = None
    resolved_at: Timestamp | None = None
    tags: list[str] = Field(default_factory=list)
    attachments: list[str] = Field(default_factory=list)
    comments: list[Comment] = Field(default_factory=list)

    @classmethod
    def from_doc(cls, doc: dict) -> "Ticket":
        return cls.model_validate(doc)

    def to_doc(self) -> dict:
        return self.model_dump(mode="json", exclude={"id"})


class TicketCreateIn(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    priority: TicketPriority
    category: str = Field(min_length=1, max_length=100)
    due_date: datetime | None = None
    tags: list[str] = Field(default_factory=list)
    attachments: list[str] = Field(default_factory=list)


class TicketChanges(BaseModel):
    """
    Typed update structure; only the fields a role may touch are ever set.

    The assignee is not part of it: assignment goes through its own action.
    """

    model_config = ConfigDict(extra="ignore")

    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, min_length=1)
    status: TicketStatus | None = None
    priority: TicketPriority | None = None
    category: str | None = Field(default=None, min_length=1, max_length=100)
    due_date: datetime | None = None
    tags: list[str] | None = None

    @field_validator("title", "description", "status", "priority", "category", "tags")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("may not be null")
        return v


class TicketAssignIn(BaseModel):
    assigned_to: str = Field(min_length=1)
    assigned_to_email: EmailStr | None = None


class TicketOut(BaseModel):
    ticket: Ticket


class TicketListOut(BaseModel):
    tickets: list[Ticket]
    total: int


class TicketStatsOut(BaseModel):
    total: int
    open: int
    in_progress: int
    resolved: int
    closed: int


class TicketStatsResponse(BaseModel):
    stats: TicketStatsOut
