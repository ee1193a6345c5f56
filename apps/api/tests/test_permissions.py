from datetime import datetime, timezone

import pytest

from helpdesk.core import permissions
from helpdesk.core.errors import Forbidden
from helpdesk.core.permissions import AccountAction, Actor, TicketAction, check_role, decide, decide_account
from helpdesk.core.roles import Role
from helpdesk.schemas.ticket import Ticket
from helpdesk.schemas.ticket_status import TicketPriority, TicketStatus

OWNER = Actor(id="cust-1", email="cust1@example.com", role=Role.CUSTOMER)
STRANGER = Actor(id="cust-2", email="cust2@example.com", role=Role.CUSTOMER)
ASSIGNEE = Actor(id="emp-1", email="emp1@example.com", role=Role.EMPLOYEE)
BYSTANDER = Actor(id="emp-2", email="emp2@example.com", role=Role.EMPLOYEE)
ADMIN = Actor(id="adm-1", email="adm1@example.com", role=Role.ADMIN)
NO_ROLE = Actor(id="ghost", email="ghost@example.com", role=None)


def make_ticket(status: TicketStatus = TicketStatus.OPEN, assigned_to: str | None = "emp-1") -> Ticket:
    now = datetime(2026, 1, 5, tzinfo=timezone.utc)
    return Ticket(
        id="t-1",
        title="Printer jam",
        description="Paper stuck in tray 2",
        status=status,
        priority=TicketPriority.MEDIUM,
        category="hardware",
        customer_id="cust-1",
        customer_email="cust1@example.com",
        assigned_to=assigned_to,
        assigned_to_email="emp1@example.com" if assigned_to else None,
        created_by="cust-1",
        created_at=now,
        updated_at=now,
    )


# (owner customer, other customer, assignee employee, other employee, admin) on an open ticket
MATRIX = {
    TicketAction.CREATE: (True, True, False, False, True),
    TicketAction.READ: (True, False, True, False, True),
    TicketAction.LIST: (True, True, True, True, True),
    TicketAction.UPDATE: (True, False, True, False, True),
    TicketAction.ASSIGN: (False, False, False, False, True),
    TicketAction.DELETE: (False, False, False, False, True),
    TicketAction.COMMENT: (True, False, True, False, True),
    TicketAction.INTERNAL_COMMENT: (False, False, True, False, True),
    TicketAction.READ_COMMENTS: (True, False, True, False, True),
}
ACTORS = (OWNER, STRANGER, ASSIGNEE, BYSTANDER, ADMIN)


def test_matrix_covers_every_ticket_action():
    assert set(MATRIX) == set(TicketAction)


@pytest.mark.parametrize("action", list(TicketAction))
@pytest.mark.parametrize("index", range(len(ACTORS)))
def test_ticket_decision_matrix(action, index):
    actor = ACTORS[index]
    decision = decide(actor, make_ticket(), action)
    assert decision.allowed is MATRIX[action][index]
    if not decision.allowed:
        assert decision.reason


@pytest.mark.parametrize("status", [TicketStatus.IN_PROGRESS, TicketStatus.RESOLVED, TicketStatus.CLOSED])
def test_owner_cannot_update_ticket_that_is_not_open(status):
    decision = decide(OWNER, make_ticket(status=status), TicketAction.UPDATE)
    assert not decision.allowed
    with pytest.raises(Forbidden):
        decision.enforce()


@pytest.mark.parametrize("status", list(TicketStatus))
def test_assignee_and_admin_can_update_in_any_status(status):
    ticket = make_ticket(status=status)
    assert decide(ASSIGNEE, ticket, TicketAction.UPDATE).allowed
    assert decide(ADMIN, ticket, TicketAction.UPDATE).allowed


def test_customer_internal_comment_denied_even_for_owner():
    decision = decide(OWNER, make_ticket(), TicketAction.INTERNAL_COMMENT)
    assert not decision.allowed
    assert "internal" in decision.reason


def test_employee_has_no_access_to_unassigned_ticket():
    ticket = make_ticket(assigned_to=None)
    for action in (TicketAction.READ, TicketAction.UPDATE, TicketAction.COMMENT, TicketAction.READ_COMMENTS):
        assert not decide(ASSIGNEE, ticket, action).allowed


@pytest.mark.parametrize("action", list(TicketAction))
def test_unrecognized_role_is_always_denied(action):
    assert not decide(NO_ROLE, make_ticket(), action).allowed


ACCOUNT_ADMIN_ONLY = [
    AccountAction.CREATE,
    AccountAction.DEACTIVATE,
    AccountAction.GRANT_ROLE,
    AccountAction.LIST_EMPLOYEES,
    AccountAction.ADMIN_UPDATE,
]


@pytest.mark.parametrize("action", ACCOUNT_ADMIN_ONLY)
def test_account_management_is_admin_only(action):
    assert decide_account(ADMIN, action, "someone").allowed
    assert not decide_account(OWNER, action, "someone").allowed
    assert not decide_account(ASSIGNEE, action, "someone").allowed
    assert not decide_account(NO_ROLE, action, "someone").allowed


@pytest.mark.parametrize("action", [AccountAction.READ_PROFILE, AccountAction.UPDATE_PROFILE])
@pytest.mark.parametrize("actor", [OWNER, ASSIGNEE, ADMIN])
def test_profile_is_self_service_only(action, actor):
    assert decide_account(actor, action, actor.id).allowed
    assert not decide_account(actor, action, "someone-else").allowed


def test_check_role_gates_a_role_set_at_once():
    staff = {Role.EMPLOYEE, Role.ADMIN}
    assert check_role(ASSIGNEE, staff).allowed
    assert check_role(ADMIN, staff).allowed
    assert not check_role(OWNER, staff).allowed
    assert not check_role(NO_ROLE, staff).allowed


def test_incomplete_rule_table_is_rejected():
    partial = {role: {TicketAction.CREATE: permissions._allow} for role in Role}
    with pytest.raises(RuntimeError):
        permissions._check_total(partial, TicketAction)

    missing_role = {Role.ADMIN: {action: permissions._allow for action in TicketAction}}
    with pytest.raises(RuntimeError):
        permissions._check_total(missing_role, TicketAction)
