"""
Ticket lifecycle rules.

Pure functions: they take the current ticket and an accepted change, and
return the next ticket state plus the partial document to persist. No status
transition graph is enforced; who may set which status is decided upstream by
the permission engine and the field filter.
"""

from datetime import datetime

from ..schemas.ticket import Ticket, TicketChanges
from ..schemas.ticket_status import TicketStatus

UPDATED = "updated"
ASSIGNED = "assigned"
CREATED = "created"
COMMENTED = "commented"
DELETED = "deleted"


def _persisted(ticket: Ticket, fields: dict) -> tuple[Ticket, dict]:
    updated = ticket.model_copy(update=fields)
    doc = updated.to_doc()
    return updated, {key: doc[key] for key in fields}


def apply_update(ticket: Ticket, changes: TicketChanges, now: datetime) -> tuple[Ticket, dict]:
    fields = changes.model_dump(exclude_unset=True)
    fields["updated_at"] = now
    # resolved_at is stamped on the first move into resolved and never cleared
    if fields.get("status") == TicketStatus.RESOLVED and ticket.resolved_at is None:
        fields["resolved_at"] = now
    return _persisted(ticket, fields)


def apply_assignment(ticket: Ticket, assignee_id: str, assignee_email: str, now: datetime) -> tuple[Ticket, dict]:
    return _persisted(
        ticket,
        {
            "assigned_to": assignee_id,
            "assigned_to_email": assignee_email,
            "status": TicketStatus.IN_PROGRESS,
            "updated_at": now,
        },
    )
