# helpdesk/services/financial_service.py
"""
Financial tickets (invoices): manual CRUD and the lookups used by ERP reconciliation.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..core.constants import FINANCIAL_TICKET_PREFIX, MISSING_CLIENT_NAME
from ..core.exceptions import NotFoundError, ValidationError
from ..models.financial_ticket import FinancialTicket
from ..models.user import User
from ..schemas.financial import (
    FileBlob,
    FileBlobView,
    FinancialTicketCreate,
    FinancialTicketUpdate,
    FinancialTicketView,
)
from . import ticket_state
from .id_allocator import insert_with_allocated_id
from .ticket_resolver import user_ref

logger = logging.getLogger(__name__)

FILE_SLOTS = ("invoice", "receipt")
REQUIRED_FIELDS = ("title", "amount", "due_date", "status")


def _blob_columns(slot: str, blob: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Flattens an optional file blob into the `<slot>_file_*` columns; None clears them."""
    blob = blob or {}
    return {
        f"{slot}_file_name": blob.get("name"),
        f"{slot}_file_size": blob.get("size"),
        f"{slot}_file_type": blob.get("type"),
        f"{slot}_file_data": blob.get("data"),
    }


def _blob_view(ticket: FinancialTicket, slot: str) -> Optional[FileBlobView]:
    data = getattr(ticket, f"{slot}_file_data")
    if not data:
        return None
    return FileBlobView(
        id=f"{ticket.id}-{slot}",
        name=getattr(ticket, f"{slot}_file_name") or slot,
        size=getattr(ticket, f"{slot}_file_size") or 0,
        type=getattr(ticket, f"{slot}_file_type") or "application/octet-stream",
        data=data,
    )


class FinancialTicketService:
    def __init__(self, session: AsyncSession):
        self.session = session

    # --- Reads ---

    async def find(self, ticket_id: str) -> Optional[FinancialTicket]:
        return await self.session.get(FinancialTicket, ticket_id)

    async def find_by_erp_identity(self, erp_id: str, erp_type: str) -> Optional[FinancialTicket]:
        result = await self.session.exec(
            select(FinancialTicket).where(
                FinancialTicket.erp_id == erp_id,
                FinancialTicket.erp_type == erp_type,
            )
        )
        return result.first()

    async def get_ticket(self, ticket_id: str) -> FinancialTicketView:
        ticket = await self.find(ticket_id)
        if not ticket:
            raise NotFoundError(f"Ticket financeiro não encontrado. ID: {ticket_id}")
        return await self.to_view(ticket)

    async def list_tickets(
        self, status: Optional[str] = None, client_id: Optional[uuid.UUID] = None
    ) -> List[FinancialTicketView]:
        statement = select(FinancialTicket)
        if status:
            statement = statement.where(FinancialTicket.status == status)
        if client_id:
            statement = statement.where(FinancialTicket.client_id == client_id)
        statement = statement.order_by(FinancialTicket.created_at.desc())
        tickets = (await self.session.exec(statement)).all()

        users: Dict[uuid.UUID, Optional[User]] = {}
        return [await self.to_view(t, users) for t in tickets]

    async def to_view(
        self, ticket: FinancialTicket, users: Optional[Dict[uuid.UUID, Optional[User]]] = None
    ) -> FinancialTicketView:
        users = {} if users is None else users

        async def lookup(user_id: Optional[uuid.UUID]) -> Optional[User]:
            if user_id is None:
                return None
            if user_id not in users:
                users[user_id] = await self.session.get(User, user_id)
            return users[user_id]

        fields = ticket.model_dump(
            exclude={
                "client_id",
                "created_by",
                *(f"{slot}_file_{part}" for slot in FILE_SLOTS for part in ("name", "size", "type", "data")),
            }
        )
        return FinancialTicketView(
            **fields,
            client=user_ref(ticket.client_id, await lookup(ticket.client_id), MISSING_CLIENT_NAME),
            created_by=user_ref(ticket.created_by, await lookup(ticket.created_by)),
            invoice_file=_blob_view(ticket, "invoice"),
            receipt_file=_blob_view(ticket, "receipt"),
        )

    # --- Writes ---

    async def create_ticket(
        self, data: FinancialTicketCreate, created_by: Optional[uuid.UUID] = None
    ) -> FinancialTicketView:
        status = ticket_state.validate_financial_status(data.status)
        fields = data.model_dump(exclude={"invoice_file", "receipt_file", "created_by", "status"})
        fields.update(_blob_columns("invoice", data.invoice_file.model_dump() if data.invoice_file else None))
        fields.update(_blob_columns("receipt", data.receipt_file.model_dump() if data.receipt_file else None))
        creator = data.created_by or created_by

        ticket = await insert_with_allocated_id(
            self.session,
            FinancialTicket,
            lambda ticket_id: FinancialTicket(id=ticket_id, status=status, created_by=creator, **fields),
            prefix=FINANCIAL_TICKET_PREFIX,
        )
        logger.info(f"Financial ticket {ticket.id} created: {ticket.title} ({ticket.amount})")
        return await self.to_view(ticket)

    async def update_ticket(self, ticket_id: str, patch: FinancialTicketUpdate) -> FinancialTicketView:
        ticket = await self.find(ticket_id)
        if not ticket:
            raise NotFoundError(f"Ticket financeiro não encontrado. ID: {ticket_id}")

        changes = patch.model_dump(exclude_unset=True)
        cleared = [f for f in REQUIRED_FIELDS if f in changes and changes[f] is None]
        if cleared:
            raise ValidationError([f"{f} não pode ser nulo" for f in cleared])
        if "status" in changes:
            changes["status"] = ticket_state.validate_financial_status(changes["status"])
        for slot in FILE_SLOTS:
            key = f"{slot}_file"
            if key in changes:
                changes.update(_blob_columns(slot, changes.pop(key)))

        changed = ticket_state.apply_changes(ticket, changes)
        self.session.add(ticket)
        await self.session.commit()
        await self.session.refresh(ticket)

        if "status" in changed:
            logger.info(f"Financial ticket {ticket_id} status set to {ticket.status}")
        return await self.to_view(ticket)

    async def delete_ticket(self, ticket_id: str) -> None:
        ticket = await self.find(ticket_id)
        if not ticket:
            raise NotFoundError(f"Ticket financeiro não encontrado. ID: {ticket_id}")
        await self.session.delete(ticket)
        await self.session.commit()
        logger.info(f"Financial ticket {ticket_id} deleted")

    async def attach_file(self, ticket_id: str, slot: str, blob: Optional[FileBlob]) -> FinancialTicketView:
        """Sets or clears the invoice/receipt blob of a ticket."""
        if slot not in FILE_SLOTS:
            raise ValidationError([f"Tipo de arquivo desconhecido: {slot}"])
        return await self.update_ticket(
            ticket_id, FinancialTicketUpdate.model_validate({f"{slot}_file": blob})
        )
