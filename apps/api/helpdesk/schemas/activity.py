from pydantic import BaseModel, Field

from ..core.clock import Timestamp


class ActivityEntry(BaseModel):
    id: str
    ticket_id: str
    user_id: str
    action: str
    details: dict = Field(default_factory=dict)
    created_at: Timestamp


class ActivityListOut(BaseModel):
    activities: list[ActivityEntry]
