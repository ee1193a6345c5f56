import pytest

from helpdesk.core.errors import DependencyFailure, Forbidden, InvalidRequest, NotFound
from helpdesk.core.permissions import Actor
from helpdesk.core.roles import Role
from helpdesk.schemas.comment import CommentCreateIn
from helpdesk.schemas.ticket import TicketAssignIn, TicketCreateIn
from helpdesk.schemas.ticket_status import TicketPriority, TicketStatus
from helpdesk.services.ticket_service import ACTIVITIES, TicketService
from helpdesk.store import SqlDocumentStore


def new_ticket(tickets, actor, title="Printer jam", priority=TicketPriority.MEDIUM):
    return tickets.create_ticket(
        actor,
        TicketCreateIn(title=title, description="Paper stuck in tray 2", priority=priority, category="hardware"),
    )


def test_create_ticket_starts_open_and_owned_by_creator(tickets, customer):
    ticket = new_ticket(tickets, customer)
    assert ticket.status == TicketStatus.OPEN
    assert ticket.customer_id == customer.id
    assert ticket.customer_email == customer.email
    assert ticket.created_by == customer.id
    assert ticket.comments == []
    assert ticket.resolved_at is None
    assert tickets.get_ticket(customer, ticket.id).title == "Printer jam"


def test_employee_cannot_create_tickets(tickets, employee):
    with pytest.raises(Forbidden):
        new_ticket(tickets, employee)


def test_end_to_end_lifecycle(tickets, customer, employee, admin):
    ticket = new_ticket(tickets, customer)
    assert ticket.status == TicketStatus.OPEN

    assigned = tickets.assign_ticket(admin, ticket.id, TicketAssignIn(assigned_to=employee.id))
    assert assigned.status == TicketStatus.IN_PROGRESS
    assert assigned.assigned_to == employee.id
    assert assigned.assigned_to_email == employee.email

    resolved = tickets.update_ticket(employee, ticket.id, {"status": "resolved"})
    assert resolved.status == TicketStatus.RESOLVED
    assert resolved.resolved_at is not None

    with pytest.raises(Forbidden):
        tickets.update_ticket(customer, ticket.id, {"description": "Please reopen"})
    assert tickets.get_ticket(customer, ticket.id).description == "Paper stuck in tray 2"


@pytest.mark.parametrize(
    "payload",
    [
        {"description": "More detail"},
        {},
        {"status": "not-a-status"},
        {"description": None, "title": 42},
    ],
)
def test_customer_update_on_non_open_ticket_is_denied_whatever_the_payload(tickets, customer, employee, admin, payload):
    ticket = new_ticket(tickets, customer)
    tickets.assign_ticket(admin, ticket.id, TicketAssignIn(assigned_to=employee.id))
    with pytest.raises(Forbidden):
        tickets.update_ticket(customer, ticket.id, payload)


def test_customer_can_edit_description_while_open(tickets, customer):
    ticket = new_ticket(tickets, customer)
    updated = tickets.update_ticket(customer, ticket.id, {"description": "Tray 3 as well", "priority": "urgent"})
    assert updated.description == "Tray 3 as well"
    assert updated.priority == TicketPriority.MEDIUM


def test_employee_update_drops_assignment_fields(tickets, customer, employee, other_employee, admin):
    ticket = new_ticket(tickets, customer)
    tickets.assign_ticket(admin, ticket.id, TicketAssignIn(assigned_to=employee.id))

    updated = tickets.update_ticket(
        employee,
        ticket.id,
        {"status": "resolved", "description": "Cleared the jam", "assigned_to": other_employee.id},
    )
    assert updated.status == TicketStatus.RESOLVED
    assert updated.description == "Cleared the jam"
    assert updated.assigned_to == employee.id

    activity = tickets.list_activity(admin, ticket.id)
    assert activity[0].action == "updated"
    assert activity[0].details == {"status": "resolved", "description": "Cleared the jam"}


def test_admin_generic_update_leaves_assignment_alone(tickets, customer, other_customer, employee, admin):
    ticket = new_ticket(tickets, customer)
    tickets.assign_ticket(admin, ticket.id, TicketAssignIn(assigned_to=employee.id))

    updated = tickets.update_ticket(
        admin,
        ticket.id,
        {"priority": "high", "assigned_to": other_customer.id, "assigned_to_email": other_customer.email},
    )
    assert updated.priority == TicketPriority.HIGH
    assert updated.assigned_to == employee.id
    assert updated.assigned_to_email == employee.email

    stored = tickets.get_ticket(employee, ticket.id)
    assert stored.assigned_to == employee.id
    assert tickets.list_activity(admin, ticket.id)[0].details == {"priority": "high"}


def test_nulling_tags_is_rejected_and_ticket_stays_readable(tickets, customer, admin):
    ticket = tickets.create_ticket(
        customer,
        TicketCreateIn(
            title="Wifi", description="Drops hourly", priority=TicketPriority.LOW, category="network", tags=["a"]
        ),
    )

    with pytest.raises(InvalidRequest):
        tickets.update_ticket(admin, ticket.id, {"tags": None})

    assert tickets.get_ticket(admin, ticket.id).tags == ["a"]
    listed, total = tickets.list_tickets(admin)
    assert total == 1
    assert listed[0].tags == ["a"]

    assert tickets.update_ticket(admin, ticket.id, {"tags": []}).tags == []


def test_resolved_at_is_set_once_and_never_cleared(tickets, customer, employee, admin):
    ticket = new_ticket(tickets, customer)
    tickets.assign_ticket(admin, ticket.id, TicketAssignIn(assigned_to=employee.id))

    first = tickets.update_ticket(employee, ticket.id, {"status": "resolved"}).resolved_at
    assert first is not None

    reopened = tickets.update_ticket(employee, ticket.id, {"status": "in_progress"})
    assert reopened.resolved_at == first

    again = tickets.update_ticket(employee, ticket.id, {"status": "resolved"})
    assert again.resolved_at == first
    assert again.updated_at > first


def test_unassigned_employee_and_other_customer_are_denied(tickets, customer, other_customer, employee):
    ticket = new_ticket(tickets, customer)
    with pytest.raises(Forbidden):
        tickets.get_ticket(employee, ticket.id)
    with pytest.raises(Forbidden):
        tickets.get_ticket(other_customer, ticket.id)
    with pytest.raises(Forbidden):
        tickets.update_ticket(employee, ticket.id, {"status": "closed"})


def test_missing_ticket_is_not_found_before_permission_check(tickets, customer):
    with pytest.raises(NotFound):
        tickets.get_ticket(customer, "does-not-exist")
    with pytest.raises(NotFound):
        tickets.update_ticket(customer, "does-not-exist", {"description": "x"})


def test_assignment_is_admin_only_and_validates_the_assignee(tickets, customer, other_customer, employee, admin):
    ticket = new_ticket(tickets, customer)
    with pytest.raises(Forbidden):
        tickets.assign_ticket(employee, ticket.id, TicketAssignIn(assigned_to=employee.id))
    with pytest.raises(NotFound):
        tickets.assign_ticket(admin, ticket.id, TicketAssignIn(assigned_to="nobody"))
    with pytest.raises(InvalidRequest):
        tickets.assign_ticket(admin, ticket.id, TicketAssignIn(assigned_to=other_customer.id))

    assigned = tickets.assign_ticket(
        admin, ticket.id, TicketAssignIn(assigned_to=employee.id, assigned_to_email="desk@example.com")
    )
    assert assigned.assigned_to_email == "desk@example.com"


def test_comments_and_internal_notes(tickets, customer, employee, admin):
    ticket = new_ticket(tickets, customer)
    tickets.assign_ticket(admin, ticket.id, TicketAssignIn(assigned_to=employee.id))

    public = tickets.add_comment(customer, ticket.id, CommentCreateIn(content="Any update?"))
    internal = tickets.add_comment(employee, ticket.id, CommentCreateIn(content="Needs a new fuser", is_internal=True))
    reply = tickets.add_comment(employee, ticket.id, CommentCreateIn(content="Part ordered"))

    assert public.author_role == Role.CUSTOMER
    assert internal.is_internal

    assert [c.id for c in tickets.list_comments(customer, ticket.id)] == [public.id, reply.id]
    assert [c.id for c in tickets.list_comments(employee, ticket.id)] == [public.id, internal.id, reply.id]
    assert [c.id for c in tickets.list_comments(admin, ticket.id)] == [public.id, internal.id, reply.id]

    # every read path that returns comments applies the same filter
    assert [c.id for c in tickets.get_ticket(customer, ticket.id).comments] == [public.id, reply.id]
    listed, _ = tickets.list_tickets(customer)
    assert [c.id for c in listed[0].comments] == [public.id, reply.id]


def test_customer_internal_comment_is_denied(tickets, customer, other_customer):
    ticket = new_ticket(tickets, customer)
    for actor in (customer, other_customer):
        with pytest.raises(Forbidden):
            tickets.add_comment(actor, ticket.id, CommentCreateIn(content="secret", is_internal=True))
    assert tickets.list_comments(customer, ticket.id) == []


def test_empty_comment_is_invalid(tickets, customer):
    ticket = new_ticket(tickets, customer)
    with pytest.raises(InvalidRequest):
        tickets.add_comment(customer, ticket.id, CommentCreateIn(content="   "))


def test_listing_is_scoped_by_role(tickets, customer, other_customer, employee, admin):
    mine = new_ticket(tickets, customer, title="Mine")
    theirs = new_ticket(tickets, other_customer, title="Theirs")
    tickets.assign_ticket(admin, theirs.id, TicketAssignIn(assigned_to=employee.id))

    customer_view, total = tickets.list_tickets(customer)
    assert [t.id for t in customer_view] == [mine.id]
    assert total == 1

    employee_view, _ = tickets.list_tickets(employee)
    assert [t.id for t in employee_view] == [theirs.id]

    admin_view, total = tickets.list_tickets(admin)
    assert [t.id for t in admin_view] == [theirs.id, mine.id]
    assert total == 2


def test_admin_listing_filters_and_pages(tickets, customer, admin):
    created = [
        new_ticket(tickets, customer, title=f"T{i}", priority=TicketPriority.HIGH if i % 2 else TicketPriority.LOW)
        for i in range(5)
    ]

    high, total = tickets.list_tickets(admin, priority="high")
    assert total == 2
    assert [t.id for t in high] == [created[3].id, created[1].id]

    page2, total = tickets.list_tickets(admin, page=2, limit=2)
    assert total == 5
    assert [t.id for t in page2] == [created[2].id, created[1].id]

    with pytest.raises(InvalidRequest):
        tickets.list_tickets(admin, status="bogus")
    with pytest.raises(InvalidRequest):
        tickets.list_tickets(admin, limit=0)


def test_delete_is_admin_only_and_hard(tickets, customer, admin):
    ticket = new_ticket(tickets, customer)
    with pytest.raises(Forbidden):
        tickets.delete_ticket(customer, ticket.id)

    tickets.delete_ticket(admin, ticket.id)
    with pytest.raises(NotFound):
        tickets.get_ticket(admin, ticket.id)
    assert [a.action for a in tickets.list_activity(admin, ticket.id)] == ["deleted", "created"]


def test_stats_count_by_status(tickets, customer, employee, admin):
    a = new_ticket(tickets, customer)
    b = new_ticket(tickets, customer)
    new_ticket(tickets, customer)
    tickets.assign_ticket(admin, a.id, TicketAssignIn(assigned_to=employee.id))
    tickets.assign_ticket(admin, b.id, TicketAssignIn(assigned_to=employee.id))
    tickets.update_ticket(employee, b.id, {"status": "closed"})

    stats = tickets.get_ticket_stats(admin)
    assert stats.model_dump() == {"total": 3, "open": 1, "in_progress": 1, "resolved": 0, "closed": 1}

    with pytest.raises(Forbidden):
        tickets.get_ticket_stats(employee)


class ActivityFailingStore(SqlDocumentStore):
    def add(self, collection, doc, doc_id=None):
        if collection == ACTIVITIES:
            raise DependencyFailure("activity store down")
        return super().add(collection, doc, doc_id)


def test_activity_log_failure_does_not_block_the_mutation(session_factory, clock, customer, employee, admin):
    tickets = TicketService(ActivityFailingStore(session_factory), clock=clock)
    ticket = new_ticket(tickets, customer)
    tickets.assign_ticket(admin, ticket.id, TicketAssignIn(assigned_to=employee.id))

    updated = tickets.update_ticket(employee, ticket.id, {"status": "resolved"})
    assert updated.status == TicketStatus.RESOLVED
    assert tickets.list_activity(admin, ticket.id) == []


def test_actor_without_role_is_denied(tickets, customer):
    ticket = new_ticket(tickets, customer)
    ghost = Actor(id=customer.id, email=customer.email, role=None)
    with pytest.raises(Forbidden):
        tickets.get_ticket(ghost, ticket.id)
    with pytest.raises(Forbidden):
        tickets.list_tickets(ghost)
