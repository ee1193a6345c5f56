from typing import Sequence

from .roles import Role, STAFF_ROLES
from ..schemas.comment import Comment
from ..schemas.ticket import Ticket


def visible_comments(comments: Sequence[Comment], role: Role | None) -> list[Comment]:
    """Customers (and unrecognized roles) never see internal notes. Order is preserved."""
    if role in STAFF_ROLES:
        return list(comments)
    return [c for c in comments if not c.is_internal]


def with_visible_comments(ticket: Ticket, role: Role | None) -> Ticket:
    return ticket.model_copy(update={"comments": visible_comments(ticket.comments, role)})
