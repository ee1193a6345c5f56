"""
Permission engine.

Every gate is a pure function of the actor, the target resource and the
requested action. Rules live in one table per role; each table must cover
every action, which is checked when the module is imported, so a new role or
action cannot silently fall through to a default.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable

from .errors import Forbidden
from .roles import Role
from ..schemas.ticket import Ticket
from ..schemas.ticket_status import TicketStatus


@dataclass(frozen=True)
class Actor:
    id: str
    email: str
    role: Role | None


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str | None = None

    def enforce(self) -> None:
        if not self.allowed:
            raise Forbidden(self.reason or "Access denied")


ALLOW = Decision(True)


def deny(reason: str = "Access denied") -> Decision:
    return Decision(False, reason)


class TicketAction(str, Enum):
    CREATE = "create"
    READ = "read"
    LIST = "list"
    UPDATE = "update"
    ASSIGN = "assign"
    DELETE = "delete"
    COMMENT = "comment"
    INTERNAL_COMMENT = "internal_comment"
    READ_COMMENTS = "read_comments"


class AccountAction(str, Enum):
    CREATE = "create"
    DEACTIVATE = "deactivate"
    GRANT_ROLE = "grant_role"
    LIST_EMPLOYEES = "list_employees"
    ADMIN_UPDATE = "admin_update"
    READ_PROFILE = "read_profile"
    UPDATE_PROFILE = "update_profile"


TicketRule = Callable[[Actor, "Ticket | None"], Decision]
AccountRule = Callable[[Actor, "str | None"], Decision]


def _allow(actor, resource) -> Decision:
    return ALLOW


def _denied(reason: str):
    def rule(actor, resource) -> Decision:
        return deny(reason)
    return rule


def _owner(actor: Actor, ticket: Ticket | None) -> Decision:
    if ticket is not None and ticket.customer_id == actor.id:
        return ALLOW
    return deny()


def _assignee(actor: Actor, ticket: Ticket | None) -> Decision:
    if ticket is not None and ticket.assigned_to is not None and ticket.assigned_to == actor.id:
        return ALLOW
    return deny()


def _owner_while_open(actor: Actor, ticket: Ticket | None) -> Decision:
    decision = _owner(actor, ticket)
    if not decision.allowed:
        return decision
    if ticket.status != TicketStatus.OPEN:
        return deny("Cannot update a ticket that is no longer open")
    return ALLOW


_TICKET_RULES: dict[Role, dict[TicketAction, TicketRule]] = {
    Role.CUSTOMER: {
        TicketAction.CREATE: _allow,
        TicketAction.READ: _owner,
        TicketAction.LIST: _allow,
        TicketAction.UPDATE: _owner_while_open,
        TicketAction.ASSIGN: _denied("Only admins can assign tickets"),
        TicketAction.DELETE: _denied("Only admins can delete tickets"),
        TicketAction.COMMENT: _owner,
        TicketAction.INTERNAL_COMMENT: _denied("Customers cannot create internal comments"),
        TicketAction.READ_COMMENTS: _owner,
    },
    Role.EMPLOYEE: {
        TicketAction.CREATE: _denied("Employees cannot create tickets"),
        TicketAction.READ: _assignee,
        TicketAction.LIST: _allow,
        TicketAction.UPDATE: _assignee,
        TicketAction.ASSIGN: _denied("Only admins can assign tickets"),
        TicketAction.DELETE: _denied("Only admins can delete tickets"),
        TicketAction.COMMENT: _assignee,
        TicketAction.INTERNAL_COMMENT: _assignee,
        TicketAction.READ_COMMENTS: _assignee,
    },
    Role.ADMIN: {action: _allow for action in TicketAction},
}


def _self(actor: Actor, target_uid: str | None) -> Decision:
    if target_uid is None or target_uid == actor.id:
        return ALLOW
    return deny()


_ADMIN_ONLY = _denied("Forbidden: insufficient permissions")

_ACCOUNT_RULES: dict[Role, dict[AccountAction, AccountRule]] = {
    Role.CUSTOMER: {
        AccountAction.CREATE: _ADMIN_ONLY,
        AccountAction.DEACTIVATE: _ADMIN_ONLY,
        AccountAction.GRANT_ROLE: _ADMIN_ONLY,
        AccountAction.LIST_EMPLOYEES: _ADMIN_ONLY,
        AccountAction.ADMIN_UPDATE: _ADMIN_ONLY,
        AccountAction.READ_PROFILE: _self,
        AccountAction.UPDATE_PROFILE: _self,
    },
    Role.EMPLOYEE: {
        AccountAction.CREATE: _ADMIN_ONLY,
        AccountAction.DEACTIVATE: _ADMIN_ONLY,
        AccountAction.GRANT_ROLE: _ADMIN_ONLY,
        AccountAction.LIST_EMPLOYEES: _ADMIN_ONLY,
        AccountAction.ADMIN_UPDATE: _ADMIN_ONLY,
        AccountAction.READ_PROFILE: _self,
        AccountAction.UPDATE_PROFILE: _self,
    },
    Role.ADMIN: {
        AccountAction.CREATE: _allow,
        AccountAction.DEACTIVATE: _allow,
        AccountAction.GRANT_ROLE: _allow,
        AccountAction.LIST_EMPLOYEES: _allow,
        AccountAction.ADMIN_UPDATE: _allow,
        AccountAction.READ_PROFILE: _self,
        AccountAction.UPDATE_PROFILE: _self,
    },
}


def _check_total(tables: dict, actions: type[Enum]) -> None:
    for role in Role:
        table = tables.get(role)
        if table is None:
            raise RuntimeError(f"no permission rules for role {role.value}")
        missing = set(actions) - set(table)
        if missing:
            names = ", ".join(sorted(a.value for a in missing))
            raise RuntimeError(f"role {role.value} has no rule for: {names}")


_check_total(_TICKET_RULES, TicketAction)
_check_total(_ACCOUNT_RULES, AccountAction)


def decide(actor: Actor, ticket: Ticket | None, action: TicketAction) -> Decision:
    """Decide a ticket action. The caller has already resolved ``ticket`` (or passes None for create/list)."""
    if actor.role is None:
        return deny("Forbidden: unrecognized role")
    return _TICKET_RULES[actor.role][action](actor, ticket)


def decide_account(actor: Actor, action: AccountAction, target_uid: str | None = None) -> Decision:
    if actor.role is None:
        return deny("Forbidden: unrecognized role")
    return _ACCOUNT_RULES[actor.role][action](actor, target_uid)


def check_role(actor: Actor, roles: frozenset[Role] | set[Role]) -> Decision:
    """Single role-set gate, e.g. ``check_role(actor, {Role.EMPLOYEE, Role.ADMIN})``."""
    if actor.role is None or actor.role not in roles:
        return deny("Forbidden: insufficient permissions")
    return ALLOW
