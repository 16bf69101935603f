# helpdesk/api/tickets/main.py
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Request, status
from sqlmodel.ext.asyncio.session import AsyncSession

from ...core.audit import log_action
from ...core.constants import UserRole
from ...core.users import current_active_user, require_admin, require_staff
from ...db.engine import get_session
from ...models.user import User
from ...schemas.ticket import CommentView, TicketCreate, TicketFilters, TicketUpdate, TicketView
from ...services.ticket_service import TicketService
from .models import CommentCreateRequest, TicketCreateRequest, TicketUpdateRequest

router = APIRouter()


# --- Dependency Injectors ---
def get_ticket_service(session: AsyncSession = Depends(get_session)) -> TicketService:
    return TicketService(session)


@router.get("/tickets", response_model=List[TicketView])
async def api_get_tickets(
    status: Optional[str] = None,
    priority: Optional[str] = None,
    category: Optional[str] = None,
    assigned_to: Optional[uuid.UUID] = None,
    created_by: Optional[uuid.UUID] = None,
    queue: Optional[str] = None,
    search: Optional[str] = None,
    service: TicketService = Depends(get_ticket_service),
    current_user: User = Depends(current_active_user),
):
    filters = TicketFilters(
        status=status,
        priority=priority,
        category=category,
        assigned_to=assigned_to,
        created_by=created_by,
        queue=queue,
        search=search,
    )
    return await service.list_tickets(current_user.role, current_user.id, filters)


@router.get("/tickets/{ticket_id}", response_model=TicketView)
async def api_get_ticket(
    ticket_id: str,
    service: TicketService = Depends(get_ticket_service),
    current_user: User = Depends(current_active_user),
):
    return await service.get_ticket(ticket_id, role=current_user.role, user_id=current_user.id)


@router.post("/tickets", response_model=TicketView, status_code=status.HTTP_201_CREATED)
async def api_create_ticket(
    ticket: TicketCreateRequest,
    service: TicketService = Depends(get_ticket_service),
    current_user: User = Depends(current_active_user),
):
    fields = ticket.model_dump(exclude={"files"})
    # Clients always open tickets for themselves
    if current_user.role == UserRole.USER.value:
        fields["client_id"] = current_user.id
    data = TicketCreate(**fields, files=ticket.files, created_by=current_user.id)
    return await service.create_ticket(data)


@router.put("/tickets/{ticket_id}", response_model=TicketView)
async def api_update_ticket(
    ticket_id: str,
    ticket_update: TicketUpdateRequest,
    service: TicketService = Depends(get_ticket_service),
    current_user: User = Depends(require_staff),
):
    patch = TicketUpdate(**ticket_update.model_dump(exclude_unset=True))
    return await service.update_ticket(ticket_id, patch, updated_by=current_user.id)


@router.delete("/tickets/{ticket_id}", status_code=status.HTTP_204_NO_CONTENT)
async def api_delete_ticket(
    ticket_id: str,
    request: Request,
    service: TicketService = Depends(get_ticket_service),
    current_user: User = Depends(require_admin),
):
    await service.delete_ticket(ticket_id)
    log_action("DELETE", "ticket", ticket_id, user=current_user, request=request)


@router.post(
    "/tickets/{ticket_id}/comments",
    response_model=CommentView,
    status_code=status.HTTP_201_CREATED,
)
async def api_add_comment(
    ticket_id: str,
    comment: CommentCreateRequest,
    service: TicketService = Depends(get_ticket_service),
    current_user: User = Depends(current_active_user),
):
    # Visibility check: raises for tickets outside the caller's scope
    await service.get_ticket(ticket_id, role=current_user.role, user_id=current_user.id)
    return await service.add_comment(ticket_id, current_user.id, comment.content, comment.files)
