# tests/test_ticket_service.py
import uuid

import pytest
from sqlmodel import select

from helpdesk.core.constants import DEFAULT_QUEUE_NAME, UserRole
from helpdesk.core.exceptions import AccessDeniedError, NotFoundError, ValidationError
from helpdesk.models.ticket import Comment, Queue, Ticket, TicketFile
from helpdesk.schemas.ticket import FileUpload, TicketCreate, TicketUpdate
from helpdesk.services.ticket_service import TicketService


def _new_ticket(created_by, **overrides):
    data = {"title": "Sem internet", "description": "Roteador piscando", "created_by": created_by}
    data.update(overrides)
    return TicketCreate(**data)


@pytest.mark.asyncio
async def test_create_ticket_defaults(session, make_user):
    user = await make_user(UserRole.USER.value)
    user_id = user.id

    ticket = await TicketService(session).create_ticket(_new_ticket(user_id))

    assert ticket.id == "00001"
    assert ticket.status == "aberto"
    assert ticket.priority == "media"
    assert ticket.client_id == user_id
    assert ticket.queue.name == DEFAULT_QUEUE_NAME
    assert ticket.created_by_user.id == user_id


@pytest.mark.asyncio
async def test_create_ticket_ids_are_sequential(session, make_user, make_ticket):
    user = await make_user()
    await make_ticket("00007", user.id)
    await make_ticket("legacy-1", user.id)
    service = TicketService(session)

    first = await service.create_ticket(_new_ticket(user.id))
    second = await service.create_ticket(_new_ticket(user.id))

    assert (first.id, second.id) == ("00008", "00009")


@pytest.mark.asyncio
async def test_create_ticket_rejects_invalid_fields_with_every_error(session, make_user):
    user = await make_user()
    with pytest.raises(ValidationError) as exc_info:
        await TicketService(session).create_ticket(
            _new_ticket(user.id, title="", priority="urgente", category="vendas")
        )
    assert len(exc_info.value.errors) == 3
    assert (await session.exec(select(Ticket))).all() == []


@pytest.mark.asyncio
async def test_create_ticket_with_files_and_queue_alias(session, make_user):
    user = await make_user()
    files = [FileUpload(name="foto.jpg", size=10, type="image/jpeg", dataUrl="data:image/jpeg;base64,AA==")]

    ticket = await TicketService(session).create_ticket(
        _new_ticket(user.id, queue_id="queue-n2-1700000000", files=files)
    )

    assert ticket.queue.name == "Suporte N2"
    assert [f.name for f in ticket.files] == ["foto.jpg"]
    assert ticket.files[0].data.startswith("data:image/jpeg")


@pytest.mark.asyncio
async def test_update_unknown_ticket_is_not_found_before_any_write(session):
    with pytest.raises(NotFoundError):
        await TicketService(session).update_ticket("00099", TicketUpdate(status="pendente"))
    assert (await session.exec(select(Queue))).all() == []


@pytest.mark.asyncio
async def test_update_status_assignment_and_unassign(session, make_user):
    client = await make_user(UserRole.USER.value)
    tech = await make_user(UserRole.TECHNICIAN.value)
    client_id, tech_id = client.id, tech.id
    service = TicketService(session)
    created = await service.create_ticket(_new_ticket(client_id))

    assigned = await service.update_ticket(
        created.id, TicketUpdate(status="em_atendimento", assigned_to=tech_id), updated_by=tech_id
    )
    assert assigned.status == "em_atendimento"
    assert assigned.assigned_to_user.id == tech_id
    assert assigned.updated_at >= created.updated_at

    unassigned = await service.update_ticket(created.id, TicketUpdate(assigned_to=None))
    assert unassigned.assigned_to is None
    assert unassigned.assigned_to_user is None
    assert unassigned.status == "em_atendimento"
    assert unassigned.id == created.id


@pytest.mark.asyncio
async def test_update_rejects_invalid_status(session, make_user):
    user = await make_user()
    service = TicketService(session)
    created = await service.create_ticket(_new_ticket(user.id))

    with pytest.raises(ValidationError):
        await service.update_ticket(created.id, TicketUpdate(status="arquivado"))

    assert (await service.get_ticket(created.id)).status == "aberto"


@pytest.mark.asyncio
async def test_queue_transfer_records_trail_comment(session, make_user):
    client = await make_user(UserRole.USER.value)
    tech = await make_user(UserRole.TECHNICIAN.value, name="Carla")
    client_id, tech_id = client.id, tech.id
    service = TicketService(session)
    created = await service.create_ticket(_new_ticket(client_id))

    moved = await service.update_ticket(created.id, TicketUpdate(queue_id="Suporte N2"), updated_by=tech_id)

    assert moved.queue.name == "Suporte N2"
    assert [c.content for c in moved.comments] == [
        'Chamado transferido de "Suporte N1" para "Suporte N2" por Carla'
    ]
    assert moved.comments[0].author.id == tech_id


@pytest.mark.asyncio
async def test_null_queue_removes_ticket_from_queue(session, make_user):
    user = await make_user()
    service = TicketService(session)
    created = await service.create_ticket(_new_ticket(user.id))

    closed = await service.update_ticket(created.id, TicketUpdate(status="fechado", queue_id=None))

    assert closed.queue is None
    assert closed.queue_id is None
    assert closed.comments == []


@pytest.mark.asyncio
async def test_get_ticket_enforces_visibility(session, make_user):
    owner = await make_user(UserRole.USER.value)
    stranger = await make_user(UserRole.USER.value)
    owner_id, stranger_id = owner.id, stranger.id
    service = TicketService(session)
    created = await service.create_ticket(_new_ticket(owner_id))

    assert (await service.get_ticket(created.id, role="user", user_id=owner_id)).id == created.id
    with pytest.raises(AccessDeniedError):
        await service.get_ticket(created.id, role="user", user_id=stranger_id)
    with pytest.raises(AccessDeniedError):
        await service.get_ticket(created.id, role="technician_n2", user_id=uuid.uuid4())


@pytest.mark.asyncio
async def test_add_comment_with_files(session, make_user):
    user = await make_user(name="Davi")
    user_id = user.id
    service = TicketService(session)
    created = await service.create_ticket(_new_ticket(user_id))

    comment = await service.add_comment(
        created.id,
        user_id,
        "Reiniciei e voltou",
        [FileUpload(name="ok.png", size=1, type="image/png", data_url="data:,1")],
    )

    assert comment.author.name == "Davi"
    assert [f.name for f in comment.files] == ["ok.png"]
    view = await service.get_ticket(created.id)
    assert view.files == []
    assert view.comments[0].files[0].name == "ok.png"


@pytest.mark.asyncio
async def test_add_comment_requires_content_and_ticket(session, make_user):
    user = await make_user()
    service = TicketService(session)
    created = await service.create_ticket(_new_ticket(user.id))

    with pytest.raises(ValidationError):
        await service.add_comment(created.id, user.id, "   ")
    with pytest.raises(NotFoundError):
        await service.add_comment("00404", user.id, "oi")


@pytest.mark.asyncio
async def test_delete_cascades_to_comments_and_files(session, make_user):
    user = await make_user()
    user_id = user.id
    service = TicketService(session)
    created = await service.create_ticket(
        _new_ticket(user_id, files=[FileUpload(name="a.txt", data_url="data:,a")])
    )
    await service.add_comment(created.id, user_id, "comentário", [FileUpload(name="b.txt", data_url="data:,b")])

    await service.delete_ticket(created.id)

    assert (await session.exec(select(Ticket))).all() == []
    assert (await session.exec(select(Comment))).all() == []
    assert (await session.exec(select(TicketFile))).all() == []
    with pytest.raises(NotFoundError):
        await service.delete_ticket(created.id)
