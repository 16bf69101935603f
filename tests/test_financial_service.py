# tests/test_financial_service.py
import uuid
from datetime import date
from decimal import Decimal

import pytest

from helpdesk.core.constants import MISSING_CLIENT_NAME, UserRole
from helpdesk.core.exceptions import NotFoundError, ValidationError
from helpdesk.schemas.financial import FileBlob, FinancialTicketCreate, FinancialTicketUpdate
from helpdesk.services.financial_service import FinancialTicketService


def _invoice(client_id, **overrides):
    data = {
        "title": "Instalação",
        "amount": Decimal("250.00"),
        "due_date": date(2030, 5, 10),
        "client_id": client_id,
    }
    data.update(overrides)
    return FinancialTicketCreate(**data)


@pytest.mark.asyncio
async def test_create_allocates_prefixed_ids(session, make_user):
    client = await make_user(UserRole.USER.value)
    staff = await make_user(UserRole.FINANCIAL.value)
    service = FinancialTicketService(session)

    first = await service.create_ticket(_invoice(client.id), created_by=staff.id)
    second = await service.create_ticket(_invoice(client.id))

    assert (first.id, second.id) == ("FT-00001", "FT-00002")
    assert first.status == "pending"
    assert first.client.email == client.email
    assert first.created_by.id == staff.id
    assert second.created_by is None


@pytest.mark.asyncio
async def test_create_rejects_unknown_status(session, make_user):
    client = await make_user()
    with pytest.raises(ValidationError):
        await FinancialTicketService(session).create_ticket(_invoice(client.id, status="refunded"))


@pytest.mark.asyncio
async def test_update_is_existence_first_then_validated(session, make_user):
    client = await make_user()
    service = FinancialTicketService(session)
    created = await service.create_ticket(_invoice(client.id))

    with pytest.raises(NotFoundError):
        await service.update_ticket("FT-09999", FinancialTicketUpdate(status="paid"))
    with pytest.raises(ValidationError):
        await service.update_ticket(created.id, FinancialTicketUpdate(status="estornado"))
    with pytest.raises(ValidationError):
        await service.update_ticket(created.id, FinancialTicketUpdate(amount=None))

    paid = await service.update_ticket(created.id, FinancialTicketUpdate(status="paid", notes="Pago no caixa"))
    assert paid.status == "paid"
    assert paid.notes == "Pago no caixa"
    assert paid.amount == Decimal("250.00")


@pytest.mark.asyncio
async def test_invoice_file_can_be_set_and_cleared(session, make_user):
    client = await make_user()
    service = FinancialTicketService(session)
    blob = FileBlob(name="boleto.pdf", size=4, type="application/pdf", data="data:application/pdf;base64,AAAA")
    created = await service.create_ticket(_invoice(client.id, invoice_file=blob))

    assert created.invoice_file.name == "boleto.pdf"
    assert created.invoice_file.id == f"{created.id}-invoice"
    assert created.receipt_file is None

    receipt = await service.attach_file(created.id, "receipt", blob)
    assert receipt.receipt_file.name == "boleto.pdf"

    cleared = await service.update_ticket(created.id, FinancialTicketUpdate(invoice_file=None))
    assert cleared.invoice_file is None
    assert cleared.receipt_file is not None


@pytest.mark.asyncio
async def test_dangling_client_renders_placeholder(session):
    missing = uuid.uuid4()
    created = await FinancialTicketService(session).create_ticket(_invoice(missing))

    assert created.client.kind == "dangling"
    assert created.client.name == MISSING_CLIENT_NAME


@pytest.mark.asyncio
async def test_list_filters_and_delete(session, make_user):
    client = await make_user()
    service = FinancialTicketService(session)
    pending = await service.create_ticket(_invoice(client.id))
    await service.create_ticket(_invoice(client.id, status="overdue"))

    assert len(await service.list_tickets()) == 2
    assert [t.status for t in await service.list_tickets(status="overdue")] == ["overdue"]

    await service.delete_ticket(pending.id)
    assert len(await service.list_tickets()) == 1
    with pytest.raises(NotFoundError):
        await service.get_ticket(pending.id)
