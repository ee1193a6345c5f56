from fastapi import APIRouter, Depends

from ..core.current_user import get_current_user, get_ticket_service
from ..core.permissions import Actor
from ..schemas.comment import CommentCreateIn, CommentListOut, CommentOut
from ..services.ticket_service import TicketService

router = APIRouter(tags=["comments"])


@router.post("/tickets/{ticket_id}/comments", response_model=CommentOut, status_code=201)
def create_comment(
    ticket_id: str,
    payload: CommentCreateIn,
    tickets: TicketService = Depends(get_ticket_service),
    user: Actor = Depends(get_current_user),
):
    return CommentOut(comment=tickets.add_comment(user, ticket_id, payload))


@router.get("/tickets/{ticket_id}/comments", response_model=CommentListOut)
def list_comments(
    ticket_id: str,
    tickets: TicketService = Depends(get_ticket_service),
    user: Actor = Depends(get_current_user),
):
    return CommentListOut(comments=tickets.list_comments(user, ticket_id))
