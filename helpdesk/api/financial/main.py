# helpdesk/api/financial/main.py
import uuid
from typing import Optional

from fastapi import APIRouter, Body, Depends, Request, status
from sqlmodel.ext.asyncio.session import AsyncSession

from ...core.audit import log_action
from ...core.users import require_admin, require_financial
from ...db.engine import get_session
from ...models.user import User
from ...schemas.financial import (
    FileBlob,
    FinancialTicketCreate,
    FinancialTicketUpdate,
    FinancialTicketView,
)
from ...services.financial_service import FinancialTicketService
from .models import FinancialTicketListResponse

router = APIRouter()


def get_financial_service(session: AsyncSession = Depends(get_session)) -> FinancialTicketService:
    return FinancialTicketService(session)


@router.get("/financial-tickets", response_model=FinancialTicketListResponse)
async def api_get_financial_tickets(
    status: Optional[str] = None,
    client_id: Optional[uuid.UUID] = None,
    service: FinancialTicketService = Depends(get_financial_service),
    current_user: User = Depends(require_financial),
):
    items = await service.list_tickets(status=status, client_id=client_id)
    return {"items": items, "total": len(items)}


@router.get("/financial-tickets/{ticket_id}", response_model=FinancialTicketView)
async def api_get_financial_ticket(
    ticket_id: str,
    service: FinancialTicketService = Depends(get_financial_service),
    current_user: User = Depends(require_financial),
):
    return await service.get_ticket(ticket_id)


@router.post(
    "/financial-tickets",
    response_model=FinancialTicketView,
    status_code=status.HTTP_201_CREATED,
)
async def api_create_financial_ticket(
    ticket: FinancialTicketCreate,
    service: FinancialTicketService = Depends(get_financial_service),
    current_user: User = Depends(require_financial),
):
    return await service.create_ticket(ticket, created_by=current_user.id)


@router.put("/financial-tickets/{ticket_id}", response_model=FinancialTicketView)
async def api_update_financial_ticket(
    ticket_id: str,
    ticket_update: FinancialTicketUpdate,
    request: Request,
    service: FinancialTicketService = Depends(get_financial_service),
    current_user: User = Depends(require_financial),
):
    updated = await service.update_ticket(ticket_id, ticket_update)
    if "status" in ticket_update.model_fields_set:
        log_action(
            "UPDATE",
            "financial_ticket",
            ticket_id,
            user=current_user,
            request=request,
            details={"status": updated.status},
        )
    return updated


@router.delete("/financial-tickets/{ticket_id}", status_code=status.HTTP_204_NO_CONTENT)
async def api_delete_financial_ticket(
    ticket_id: str,
    request: Request,
    service: FinancialTicketService = Depends(get_financial_service),
    current_user: User = Depends(require_admin),
):
    await service.delete_ticket(ticket_id)
    log_action("DELETE", "financial_ticket", ticket_id, user=current_user, request=request)


@router.put("/financial-tickets/{ticket_id}/files/{slot}", response_model=FinancialTicketView)
async def api_set_financial_ticket_file(
    ticket_id: str,
    slot: str,
    file: Optional[FileBlob] = Body(default=None),
    service: FinancialTicketService = Depends(get_financial_service),
    current_user: User = Depends(require_financial),
):
    """Sets the invoice or receipt file; an empty body removes it."""
    return await service.attach_file(ticket_id, slot, file)
