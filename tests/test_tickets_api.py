# tests/test_tickets_api.py
import pytest

from helpdesk.core.constants import UserRole


@pytest.mark.asyncio
async def test_client_creates_and_lists_own_tickets(client, login_as, make_user):
    owner = await make_user(UserRole.USER.value)
    other = await make_user(UserRole.USER.value)

    login_as(other)
    await client.post("/api/tickets", json={"title": "Outro", "description": "x"})

    login_as(owner)
    response = await client.post(
        "/api/tickets",
        json={"title": "Lentidão", "description": "Desde ontem", "priority": "alta", "client_id": str(other.id)},
    )
    assert response.status_code == 201
    body = response.json()
    assert body["id"] == "00002"
    assert body["client_id"] == str(owner.id)
    assert body["queue"]["name"] == "Suporte N1"

    listing = await client.get("/api/tickets")
    assert [t["id"] for t in listing.json()] == ["00002"]

    forbidden = await client.get("/api/tickets/00001")
    assert forbidden.status_code == 403


@pytest.mark.asyncio
async def test_invalid_ticket_is_422_with_all_errors(client, login_as, make_user):
    login_as(await make_user())

    response = await client.post(
        "/api/tickets", json={"title": "", "description": "", "priority": "urgente"}
    )

    assert response.status_code == 422
    assert len(response.json()["errors"]) == 3


@pytest.mark.asyncio
async def test_staff_updates_and_admin_deletes(client, login_as, make_user):
    owner = await make_user(UserRole.USER.value)
    tech = await make_user(UserRole.TECHNICIAN.value)
    admin = await make_user(UserRole.ADMIN.value)

    login_as(owner)
    ticket_id = (await client.post("/api/tickets", json={"title": "T", "description": "D"})).json()["id"]
    assert (await client.put(f"/api/tickets/{ticket_id}", json={"status": "resolvido"})).status_code == 403

    login_as(tech)
    updated = await client.put(
        f"/api/tickets/{ticket_id}", json={"status": "em_andamento", "assigned_to": str(tech.id)}
    )
    assert updated.status_code == 200
    assert updated.json()["assigned_to_user"]["kind"] == "resolved"
    assert (await client.put("/api/tickets/99999", json={"status": "pendente"})).status_code == 404
    assert (await client.delete(f"/api/tickets/{ticket_id}")).status_code == 403

    login_as(admin)
    assert (await client.delete(f"/api/tickets/{ticket_id}")).status_code == 204
    assert (await client.get(f"/api/tickets/{ticket_id}")).status_code == 404


@pytest.mark.asyncio
async def test_comment_endpoint(client, login_as, make_user):
    owner = await make_user(UserRole.USER.value)
    stranger = await make_user(UserRole.USER.value)

    login_as(owner)
    ticket_id = (await client.post("/api/tickets", json={"title": "T", "description": "D"})).json()["id"]
    response = await client.post(
        f"/api/tickets/{ticket_id}/comments",
        json={"content": "Alguma novidade?", "files": [{"name": "a.txt", "dataUrl": "data:,a"}]},
    )
    assert response.status_code == 201
    assert response.json()["files"][0]["name"] == "a.txt"

    login_as(stranger)
    denied = await client.post(f"/api/tickets/{ticket_id}/comments", json={"content": "oi"})
    assert denied.status_code == 403


@pytest.mark.asyncio
async def test_unauthenticated_requests_are_rejected(client):
    assert (await client.get("/api/tickets")).status_code == 401
