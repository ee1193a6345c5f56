from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Callable, Mapping

from ..core import lifecycle
from ..core.clock import format_timestamp, utcnow
from ..core.comment_visibility import visible_comments, with_visible_comments
from ..core.concurrency import run_concurrently
from ..core.errors import InvalidRequest, NotFound
from ..core.field_filter import project_ticket_update
from ..core.permissions import Actor, TicketAction, check_role, decide
from ..core.roles import Role, STAFF_ROLES
from ..schemas.account import Account
from ..schemas.activity import ActivityEntry
from ..schemas.comment import Comment, CommentCreateIn
from ..schemas.ticket import Ticket, TicketAssignIn, TicketCreateIn, TicketStatsOut
from ..schemas.ticket_status import ALLOWED_PRIORITY, ALLOWED_STATUS, TicketStatus
from ..store import DocumentStore, Where

logger = logging.getLogger(__name__)

TICKETS = "tickets"
ACTIVITIES = "ticket_activities"
USERS = "users"

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


class TicketService:
    def __init__(self, store: DocumentStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def _get_or_404(self, ticket_id: str) -> Ticket:
        doc = self.store.get(TICKETS, ticket_id)
        if not doc:
            raise NotFound("Ticket not found")
        return Ticket.from_doc(doc)

    def _record_activity(self, ticket_id: str, user_id: str, action: str, details: Any) -> None:
        # audit trail is best effort: a failed write never fails the mutation
        try:
            self.store.add(
                ACTIVITIES,
                {
                    "ticket_id": ticket_id,
                    "user_id": user_id,
                    "action": action,
                    "details": details,
                    "created_at": format_timestamp(self.clock()),
                },
            )
        except Exception:
            logger.exception("failed to add activity log (ticket_id=%s action=%s)", ticket_id, action)

    def create_ticket(self, actor: Actor, payload: TicketCreateIn) -> Ticket:
        decide(actor, None, TicketAction.CREATE).enforce()
        now = self.clock()
        ticket = Ticket(
            id="",
            title=payload.title,
            description=payload.description,
            status=TicketStatus.OPEN,
            priority=payload.priority,
            category=payload.category,
            customer_id=actor.id,
            customer_email=actor.email,
            created_by=actor.id,
            created_at=now,
            updated_at=now,
            due_date=payload.due_date,
            tags=payload.tags,
            attachments=payload.attachments,
            comments=[],
        )
        ticket_id = self.store.add(TICKETS, ticket.to_doc())
        ticket = ticket.model_copy(update={"id": ticket_id})
        self._record_activity(ticket_id, actor.id, lifecycle.CREATED, {"title": ticket.title})
        logger.info("ticket %s created by %s", ticket_id, actor.id)
        return ticket

    def list_tickets(
        self,
        actor: Actor,
        status: str | None = None,
        priority: str | None = None,
        assigned_to: str | None = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> tuple[list[Ticket], int]:
        decide(actor, None, TicketAction.LIST).enforce()

        if actor.role == Role.CUSTOMER:
            docs = self.store.query(
                TICKETS, [Where("customer_id", "==", actor.id)], order_by="created_at", descending=True
            )
            total = len(docs)
        elif actor.role == Role.EMPLOYEE:
            docs = self.store.query(
                TICKETS, [Where("assigned_to", "==", actor.id)], order_by="created_at", descending=True
            )
            total = len(docs)
        else:
            if status is not None and status not in ALLOWED_STATUS:
                raise InvalidRequest(f"Invalid status: {status}")
            if priority is not None and priority not in ALLOWED_PRIORITY:
                raise InvalidRequest(f"Invalid priority: {priority}")
            if page < 1:
                raise InvalidRequest("page must be >= 1")
            if limit < 1 or limit > MAX_PAGE_SIZE:
                raise InvalidRequest(f"limit must be between 1 and {MAX_PAGE_SIZE}")

            where: list[Where] = []
            if status is not None:
                where.append(Where("status", "==", status))
            if priority is not None:
                where.append(Where("priority", "==", priority))
            if assigned_to is not None:
                where.append(Where("assigned_to", "==", assigned_to))

            total = self.store.count(TICKETS, where)
            docs = self.store.query(
                TICKETS,
                where,
                order_by="created_at",
                descending=True,
                offset=(page - 1) * limit,
                limit=limit,
            )

        tickets = [with_visible_comments(Ticket.from_doc(d), actor.role) for d in docs]
        return tickets, total

    def get_ticket(self, actor: Actor, ticket_id: str) -> Ticket:
        ticket = self._get_or_404(ticket_id)
        decide(actor, ticket, TicketAction.READ).enforce()
        return with_visible_comments(ticket, actor.role)

    def update_ticket(self, actor: Actor, ticket_id: str, payload: Mapping[str, Any]) -> Ticket:
        ticket = self._get_or_404(ticket_id)
        # the customer "open only" rule is a hard deny, checked before projection
        decide(actor, ticket, TicketAction.UPDATE).enforce()
        changes = project_ticket_update(actor.role, payload)

        _, delta = lifecycle.apply_update(ticket, changes, self.clock())
        self.store.update(TICKETS, ticket_id, delta)
        self._record_activity(
            ticket_id, actor.id, lifecycle.UPDATED, changes.model_dump(mode="json", exclude_unset=True)
        )
        return with_visible_comments(self._get_or_404(ticket_id), actor.role)

    def assign_ticket(self, actor: Actor, ticket_id: str, payload: TicketAssignIn) -> Ticket:
        ticket = self._get_or_404(ticket_id)
        decide(actor, ticket, TicketAction.ASSIGN).enforce()

        assignee_doc = self.store.get(USERS, payload.assigned_to)
        if not assignee_doc:
            raise NotFound("Assignee not found")
        assignee = Account.from_doc(assignee_doc)
        if assignee.role not in STAFF_ROLES or not assignee.is_active:
            raise InvalidRequest("Assignee must be an active employee or admin")
        assignee_email = str(payload.assigned_to_email) if payload.assigned_to_email else assignee.email

        _, delta = lifecycle.apply_assignment(ticket, assignee.uid, assignee_email, self.clock())
        self.store.update(TICKETS, ticket_id, delta)
        self._record_activity(ticket_id, actor.id, lifecycle.ASSIGNED, {"assigned_to": assignee_email})
        return with_visible_comments(self._get_or_404(ticket_id), actor.role)

    def add_comment(self, actor: Actor, ticket_id: str, payload: CommentCreateIn) -> Comment:
        content = (payload.content or "").strip()
        if not content:
            raise InvalidRequest("Comment content is required")

        ticket = self._get_or_404(ticket_id)
        action = TicketAction.INTERNAL_COMMENT if payload.is_internal else TicketAction.COMMENT
        decide(actor, ticket, action).enforce()

        now = self.clock()
        comment = Comment(
            id=uuid.uuid4().hex,
            ticket_id=ticket_id,
            author_id=actor.id,
            author_email=actor.email,
            author_role=actor.role,
            content=content,
            created_at=now,
            is_internal=payload.is_internal,
        )
        self.store.append_to_array(
            TICKETS,
            ticket_id,
            "comments",
            comment.model_dump(mode="json"),
            updates={"updated_at": format_timestamp(now)},
        )
        self._record_activity(
            ticket_id,
            actor.id,
            lifecycle.COMMENTED,
            {"comment_id": comment.id, "is_internal": comment.is_internal},
        )
        return comment

    def list_comments(self, actor: Actor, ticket_id: str) -> list[Comment]:
        ticket = self._get_or_404(ticket_id)
        decide(actor, ticket, TicketAction.READ_COMMENTS).enforce()
        return visible_comments(ticket.comments, actor.role)

    def delete_ticket(self, actor: Actor, ticket_id: str) -> None:
        ticket = self._get_or_404(ticket_id)
        decide(actor, ticket, TicketAction.DELETE).enforce()
        self.store.delete(TICKETS, ticket_id)
        self._record_activity(ticket_id, actor.id, lifecycle.DELETED, {"title": ticket.title})
        logger.info("ticket %s deleted by %s", ticket_id, actor.id)

    def get_ticket_stats(self, actor: Actor) -> TicketStatsOut:
        check_role(actor, {Role.ADMIN}).enforce()
        total, open_, in_progress, resolved, closed = run_concurrently(
            lambda: self.store.count(TICKETS),
            lambda: self.store.count(TICKETS, [Where("status", "==", TicketStatus.OPEN.value)]),
            lambda: self.store.count(TICKETS, [Where("status", "==", TicketStatus.IN_PROGRESS.value)]),
            lambda: self.store.count(TICKETS, [Where("status", "==", TicketStatus.RESOLVED.value)]),
            lambda: self.store.count(TICKETS, [Where("status", "==", TicketStatus.CLOSED.value)]),
        )
        return TicketStatsOut(
            total=total,
            open=open_,
            in_progress=in_progress,
            resolved=resolved,
            closed=closed,
        )

    def list_activity(self, actor: Actor, ticket_id: str) -> list[ActivityEntry]:
        check_role(actor, {Role.ADMIN}).enforce()
        docs = self.store.query(
            ACTIVITIES, [Where("ticket_id", "==", ticket_id)], order_by="created_at", descending=True
        )
        return [ActivityEntry.model_validate(d) for d in docs]
