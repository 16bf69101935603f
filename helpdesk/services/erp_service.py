# helpdesk/services/erp_service.py
"""
ERP reconciliation: idempotent create-or-update of financial tickets from
inbound ERP events, keyed by the external identity (erp_id, erp_type).

- reconcile_ticket: invoice created or corrected in the ERP. The client is
  provisioned on the fly when its e-mail is unknown. Replays and corrections
  update the existing ticket in place; the local id never changes.
- reconcile_payment: payment confirmed in the ERP. Marks the matching ticket
  as paid and appends a note; never creates a ticket.

Both entry points return a ReconcileResult instead of raising for expected
conditions (invalid payload, unknown ticket, e-mail conflicts, storage errors).
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel.ext.asyncio.session import AsyncSession

from ..core.constants import FINANCIAL_TICKET_PREFIX, FinancialStatus, UserRole
from ..core.exceptions import ConflictError, HelpdeskError, NotFoundError, StorageError, ValidationError
from ..models.financial_ticket import FinancialTicket
from ..schemas.financial import ERPPaymentData, ERPTicketData, ReconcileResult
from ..utils.timeutils import to_naive_utc
from . import ticket_state
from .financial_service import FinancialTicketService
from .id_allocator import insert_with_allocated_id
from .settings_service import ErpIntegrationConfig
from .user_service import UserService

logger = logging.getLogger(__name__)

PayloadModel = TypeVar("PayloadModel", bound=BaseModel)

COMPANY_SEPARATORS = (" - ", " | ")


def describe_errors(exc: PydanticValidationError) -> List[str]:
    """One readable message per violation, named after the wire (camelCase) field."""
    messages = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err["loc"]) or "payload"
        kind = err["type"]
        if kind in ("missing", "string_too_short"):
            messages.append(f"{field} é obrigatório")
        elif kind == "greater_than":
            messages.append(f"{field} deve ser maior que zero")
        elif kind == "enum":
            messages.append(f"{field} inválido: {err.get('input')!r}")
        else:
            messages.append(f"{field}: {err['msg']}")
    return messages


def parse_payload(model: Type[PayloadModel], payload: Union[PayloadModel, Dict[str, Any]]) -> PayloadModel:
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError(describe_errors(exc)) from exc


def split_client_name(display_name: str) -> Tuple[str, Optional[str]]:
    """
    "Maria Souza - ACME Ltda" -> ("Maria Souza", "ACME Ltda").
    The earliest separator wins; without one the company stays unset.

    >>> split_client_name("João | Padaria Central")
    ('João', 'Padaria Central')
    >>> split_client_name("A B")
    ('A B', None)
    """
    display_name = display_name.strip()
    positions = [
        (display_name.find(sep), sep) for sep in COMPANY_SEPARATORS if sep in display_name
    ]
    if not positions:
        return display_name, None
    index, sep = min(positions)
    name = display_name[:index].strip()
    company = display_name[index + len(sep):].strip()
    return (name or display_name), (company or None)


class ERPReconciliationService:
    def __init__(self, session: AsyncSession, config: ErpIntegrationConfig):
        self.session = session
        self.config = config
        self.users = UserService(session)
        self.tickets = FinancialTicketService(session)

    # --- Entry points ---

    async def reconcile_ticket(self, payload: Union[ERPTicketData, Dict[str, Any]]) -> ReconcileResult:
        try:
            data = parse_payload(ERPTicketData, payload)
            self._check_enabled(data.erp_type.value)
            client_id = await self._resolve_client(data)
            ticket_id, created = await self._upsert_ticket(data, client_id)
        except HelpdeskError as e:
            return self._failure("ticket", e)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Storage failure while reconciling ERP ticket: {e}")
            return self._failure("ticket", StorageError("Erro ao processar ticket: falha de armazenamento"))

        message = "Ticket criado com sucesso" if created else "Ticket atualizado com sucesso"
        logger.info(
            f"ERP ticket {data.erp_type.value}:{data.erp_id} -> {ticket_id} "
            f"({'created' if created else 'updated'})"
        )
        return ReconcileResult(success=True, ticket_id=ticket_id, message=message)

    async def reconcile_payment(self, payload: Union[ERPPaymentData, Dict[str, Any]]) -> ReconcileResult:
        try:
            data = parse_payload(ERPPaymentData, payload)
            self._check_enabled(data.erp_type.value)
            ticket_id = await self._apply_payment(data)
        except HelpdeskError as e:
            return self._failure("payment", e)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Storage failure while reconciling ERP payment: {e}")
            return self._failure("payment", StorageError("Erro ao processar pagamento: falha de armazenamento"))

        logger.info(f"ERP payment {data.erp_type.value}:{data.erp_id} settled ticket {ticket_id}")
        return ReconcileResult(success=True, ticket_id=ticket_id, message="Pagamento processado com sucesso")

    # --- Steps ---

    def _check_enabled(self, erp_type: str) -> None:
        if not self.config.accepts(erp_type):
            raise ValidationError([f"erpType não habilitado: {erp_type}"])

    async def _resolve_client(self, data: ERPTicketData) -> uuid.UUID:
        email = str(data.client_email)
        client = await self.users.find_by_email(email, role=UserRole.USER.value)
        if client:
            return client.id

        if await self.users.find_by_email(email):
            raise ConflictError(f"O email {email} pertence a um usuário que não é cliente")

        name, company = split_client_name(data.client_name)
        try:
            client = await self.users.create_client(name, email, company)
        except ConflictError:
            # Provisioned concurrently by another event for the same client
            client = await self.users.find_by_email(email, role=UserRole.USER.value)
            if client is None:
                raise
        return client.id

    async def _system_actor_id(self) -> Optional[uuid.UUID]:
        if not self.config.system_user_email:
            return None
        actor = await self.users.find_by_email(self.config.system_user_email)
        return actor.id if actor else None

    async def _upsert_ticket(self, data: ERPTicketData, client_id: uuid.UUID) -> Tuple[str, bool]:
        erp_type = data.erp_type.value
        existing = await self.tickets.find_by_erp_identity(data.erp_id, erp_type)
        if existing:
            return await self._apply_correction(existing.id, data, client_id), False

        creator_id = await self._system_actor_id() or client_id
        metadata = dict(data.metadata or {})
        if data.invoice_file_url:
            metadata.setdefault("invoiceFileUrl", data.invoice_file_url)
        if data.client_document:
            metadata.setdefault("clientDocument", data.client_document)

        def build(ticket_id: str) -> FinancialTicket:
            return FinancialTicket(
                id=ticket_id,
                title=data.title,
                description=data.description,
                amount=data.amount,
                due_date=data.due_date,
                status=FinancialStatus.PENDING.value,
                client_id=client_id,
                created_by=creator_id,
                notes=f"Integração {erp_type.upper()}. ERP ID: {data.erp_id}",
                erp_id=data.erp_id,
                erp_type=erp_type,
                invoice_number=data.invoice_number,
                barcode=data.barcode,
                our_number=data.our_number,
                erp_metadata=metadata or None,
            )

        try:
            ticket = await insert_with_allocated_id(
                self.session, FinancialTicket, build, prefix=FINANCIAL_TICKET_PREFIX
            )
        except IntegrityError:
            # Same external identity inserted concurrently; the winner gets the update
            winner = await self.tickets.find_by_erp_identity(data.erp_id, erp_type)
            if winner is None:
                raise
            logger.info(f"ERP ticket {erp_type}:{data.erp_id} created concurrently as {winner.id}")
            return await self._apply_correction(winner.id, data, client_id), False
        return ticket.id, True

    async def _apply_correction(self, ticket_id: str, data: ERPTicketData, client_id: uuid.UUID) -> str:
        ticket = await self.session.get(FinancialTicket, ticket_id)
        if ticket is None:
            raise NotFoundError(f"Ticket financeiro não encontrado. ID: {ticket_id}")
        ticket_state.apply_changes(
            ticket,
            {
                "title": data.title,
                "description": data.description,
                "amount": data.amount,
                "due_date": data.due_date,
                "client_id": client_id,
            },
        )
        self.session.add(ticket)
        await self.session.commit()
        return ticket_id

    async def _apply_payment(self, data: ERPPaymentData) -> str:
        erp_type = data.erp_type.value
        ticket = await self.tickets.find_by_erp_identity(data.erp_ticket_id, erp_type)
        if ticket is None:
            raise NotFoundError("Ticket não encontrado para este pagamento")
        ticket_id = ticket.id

        if ticket.amount != data.amount:
            logger.warning(
                f"Payment {data.erp_id} for {ticket_id} has amount {data.amount}, "
                f"ticket amount is {ticket.amount}"
            )

        note = f"Pagamento confirmado via {erp_type.upper()}. ID: {data.erp_id}"
        metadata = dict(data.metadata or {})
        if data.receipt_file_url:
            metadata.setdefault("receiptFileUrl", data.receipt_file_url)

        ticket_state.apply_changes(
            ticket,
            {
                "status": FinancialStatus.PAID.value,
                "payment_date": to_naive_utc(data.payment_date),
                "notes": f"{ticket.notes}\n{note}" if ticket.notes else note,
                "payment_erp_id": data.erp_id,
                "payment_method": data.payment_method,
                "transaction_id": data.transaction_id,
                "payment_metadata": metadata or None,
            },
        )
        self.session.add(ticket)
        await self.session.commit()
        return ticket_id

    def _failure(self, kind: str, error: HelpdeskError) -> ReconcileResult:
        if isinstance(error, ValidationError):
            logger.info(f"Rejected ERP {kind} event: {error.message}")
        else:
            logger.warning(f"ERP {kind} event failed ({error.code}): {error.message}")
        return ReconcileResult(success=False, message=error.message, error=error.code)
