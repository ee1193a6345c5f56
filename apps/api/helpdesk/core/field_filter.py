"""
Field projection for update payloads.

Each (role, action) pair has an explicit allow-list. Keys outside it are
dropped before any value validation runs, so an excess or malformed field the
role may not touch never produces an error. What survives is validated into
the action's typed change model.
"""

from enum import Enum
from typing import Mapping

from pydantic import BaseModel, ValidationError

from .errors import InvalidRequest
from .permissions import AccountAction, TicketAction
from .roles import Role
from ..schemas.account import ProfileChanges
from ..schemas.ticket import TicketChanges

PROFILE_FIELDS = frozenset({"display_name", "phone_number", "department"})

ALLOWED_FIELDS: dict[tuple[Role, Enum], frozenset[str]] = {
    (Role.CUSTOMER, TicketAction.UPDATE): frozenset({"description"}),
    (Role.EMPLOYEE, TicketAction.UPDATE): frozenset({"status", "description"}),
    (Role.ADMIN, TicketAction.UPDATE): frozenset(TicketChanges.model_fields),
    (Role.CUSTOMER, AccountAction.UPDATE_PROFILE): PROFILE_FIELDS,
    (Role.EMPLOYEE, AccountAction.UPDATE_PROFILE): PROFILE_FIELDS,
    (Role.ADMIN, AccountAction.UPDATE_PROFILE): PROFILE_FIELDS,
    (Role.ADMIN, AccountAction.ADMIN_UPDATE): PROFILE_FIELDS,
}

CHANGE_MODELS: dict[Enum, type[BaseModel]] = {
    TicketAction.UPDATE: TicketChanges,
    AccountAction.UPDATE_PROFILE: ProfileChanges,
    AccountAction.ADMIN_UPDATE: ProfileChanges,
}


def describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or "Invalid request"


def allowed_fields(role: Role | None, action: Enum) -> frozenset[str]:
    if role is None:
        return frozenset()
    return ALLOWED_FIELDS.get((role, action), frozenset())


def project(role: Role | None, action: Enum, payload: Mapping) -> BaseModel:
    model = CHANGE_MODELS.get(action)
    if model is None:
        raise ValueError(f"no change model for action {action!r}")
    keep = allowed_fields(role, action)
    kept = {k: v for k, v in (payload or {}).items() if k in keep}
    try:
        return model.model_validate(kept)
    except ValidationError as exc:
        raise InvalidRequest(describe_validation_error(exc)) from exc


def project_ticket_update(role: Role | None, payload: Mapping) -> TicketChanges:
    return project(role, TicketAction.UPDATE, payload)


def project_account_update(role: Role | None, action: AccountAction, payload: Mapping) -> ProfileChanges:
    return project(role, action, payload)
