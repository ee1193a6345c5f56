from fastapi import APIRouter, Body, Depends, Query

from ..core.current_user import get_current_user, get_ticket_service, require_admin
from ..core.permissions import Actor
from ..schemas.activity import ActivityListOut
from ..schemas.ticket import TicketAssignIn, TicketCreateIn, TicketListOut, TicketOut, TicketStatsResponse
from ..services.ticket_service import DEFAULT_PAGE_SIZE, TicketService

router = APIRouter(prefix="/tickets", tags=["tickets"])


@router.get("/stats/overview", response_model=TicketStatsResponse)
def ticket_stats(
    tickets: TicketService = Depends(get_ticket_service),
    user: Actor = Depends(require_admin),
):
    return TicketStatsResponse(stats=tickets.get_ticket_stats(user))


@router.post("", response_model=TicketOut, status_code=201)
def create_ticket(
    payload: TicketCreateIn,
    tickets: TicketService = Depends(get_ticket_service),
    user: Actor = Depends(get_current_user),
):
    return TicketOut(ticket=tickets.create_ticket(user, payload))


@router.get("", response_model=TicketListOut)
def list_tickets(
    tickets: TicketService = Depends(get_ticket_service),
    user: Actor = Depends(get_current_user),
    status: str | None = Query(default=None),
    priority: str | None = Query(default=None),
    assigned_to: str | None = Query(default=None),
    page: int = Query(default=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE),
):
    items, total = tickets.list_tickets(
        user,
        status=status,
        priority=priority,
        assigned_to=assigned_to,
        page=page,
        limit=limit,
    )
    return TicketListOut(tickets=items, total=total)


@router.get("/{ticket_id}", response_model=TicketOut)
def get_ticket(
    ticket_id: str,
    tickets: TicketService = Depends(get_ticket_service),
    user: Actor = Depends(get_current_user),
):
    return TicketOut(ticket=tickets.get_ticket(user, ticket_id))


@router.put("/{ticket_id}", response_model=TicketOut)
def update_ticket(
    ticket_id: str,
    payload: dict = Body(...),
    tickets: TicketService = Depends(get_ticket_service),
    user: Actor = Depends(get_current_user),
):
    return TicketOut(ticket=tickets.update_ticket(user, ticket_id, payload))


@router.put("/{ticket_id}/assign", response_model=TicketOut)
def assign_ticket(
    ticket_id: str,
    payload: TicketAssignIn,
    tickets: TicketService = Depends(get_ticket_service),
    user: Actor = Depends(require_admin),
):
    return TicketOut(ticket=tickets.assign_ticket(user, ticket_id, payload))


@router.delete("/{ticket_id}")
def delete_ticket(
    ticket_id: str,
    tickets: TicketService = Depends(get_ticket_service),
    user: Actor = Depends(require_admin),
):
    tickets.delete_ticket(user, ticket_id)
    return {"message": "Ticket deleted successfully"}


@router.get("/{ticket_id}/activity", response_model=ActivityListOut)
def list_activity(
    ticket_id: str,
    tickets: TicketService = Depends(get_ticket_service),
    user: Actor = Depends(require_admin),
):
    return ActivityListOut(activities=tickets.list_activity(user, ticket_id))
