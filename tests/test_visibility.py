# tests/test_visibility.py
import uuid

import pytest
import pytest_asyncio

from helpdesk.core.constants import UserRole
from helpdesk.schemas.ticket import TicketFilters
from helpdesk.services.ticket_service import TicketService
from helpdesk.services.visibility import can_view, scope


def test_full_visibility_roles_have_no_predicate():
    assert scope(UserRole.ADMIN.value, uuid.uuid4()) is None
    assert scope(UserRole.TECHNICIAN, uuid.uuid4()) is None


def test_can_view_rules():
    me, other = uuid.uuid4(), uuid.uuid4()
    assert can_view("user", me, me, None)
    assert not can_view("user", me, other, "Suporte N2")
    assert can_view("technician_n2", me, other, "Suporte N2")
    assert can_view("technician_n2", me, other, "Infra n2")
    assert not can_view("technician_n2", me, me, "Suporte N1")
    assert not can_view("technician_n2", me, me, None)
    assert can_view("technician", me, other, None)
    assert not can_view("financial", me, other, None)


@pytest_asyncio.fixture
async def populated(session, make_user, make_queue, make_ticket):
    client_a = await make_user(UserRole.USER.value)
    client_b = await make_user(UserRole.USER.value)
    n1 = await make_queue("Suporte N1")
    n2 = await make_queue("Suporte N2")
    await make_ticket("00001", client_a.id, queue_id=n1.id, status="aberto")
    await make_ticket("00002", client_a.id, queue_id=n2.id, status="pendente")
    await make_ticket("00003", client_b.id, queue_id=n2.id, status="aberto")
    await make_ticket("00004", client_b.id, queue_id=None, status="aberto")
    return client_a, client_b


@pytest.mark.asyncio
async def test_user_sees_only_own_tickets_regardless_of_filters(session, populated):
    client_a, client_b = populated
    service = TicketService(session)

    own = await service.list_tickets("user", client_a.id)
    assert {t.id for t in own} == {"00001", "00002"}

    # Filtering by another creator must not widen the scope
    widened = await service.list_tickets("user", client_a.id, TicketFilters(created_by=client_b.id))
    assert widened == []

    by_status = await service.list_tickets("user", client_a.id, TicketFilters(status="aberto"))
    assert [t.id for t in by_status] == ["00001"]


@pytest.mark.asyncio
async def test_technician_n2_sees_n2_queue_regardless_of_assignment(session, populated, make_user):
    tech = await make_user(UserRole.TECHNICIAN_N2.value)
    service = TicketService(session)

    visible = await service.list_tickets("technician_n2", tech.id)

    assert {t.id for t in visible} == {"00002", "00003"}


@pytest.mark.asyncio
async def test_admin_and_technician_see_everything(session, populated, make_user):
    admin = await make_user(UserRole.ADMIN.value)
    service = TicketService(session)

    assert len(await service.list_tickets("admin", admin.id)) == 4
    assert len(await service.list_tickets("technician", admin.id)) == 4


@pytest.mark.asyncio
async def test_queue_and_search_filters(session, populated, make_user):
    admin = await make_user(UserRole.ADMIN.value)
    service = TicketService(session)

    in_n2 = await service.list_tickets("admin", admin.id, TicketFilters(queue="n2"))
    assert {t.id for t in in_n2} == {"00002", "00003"}

    found = await service.list_tickets("admin", admin.id, TicketFilters(search="chamado 0000"))
    assert len(found) == 4
    assert await service.list_tickets("admin", admin.id, TicketFilters(search="inexistente")) == []
