# tests/test_ticket_state.py
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from helpdesk.core.constants import TicketStatus
from helpdesk.core.exceptions import ValidationError
from helpdesk.services import ticket_state
from helpdesk.utils.timeutils import to_naive_utc


@pytest.mark.parametrize("status", [s.value for s in TicketStatus])
def test_every_enumerated_status_is_accepted(status):
    ticket_state.validate_ticket_fields({"status": status})


def test_transitions_are_not_ordered():
    # Reopening a closed ticket is a plain membership check
    ticket_state.validate_ticket_fields({"status": "aberto"})
    assert ticket_state.is_terminal("fechado")
    assert ticket_state.is_terminal("encerrado")
    assert not ticket_state.is_terminal("resolvido")


def test_all_violations_are_reported():
    with pytest.raises(ValidationError) as exc_info:
        ticket_state.validate_ticket_fields(
            {"title": " ", "status": "arquivado", "priority": "urgente", "category": None}
        )
    errors = exc_info.value.errors
    assert len(errors) == 4
    assert errors[0] == "title é obrigatório"
    assert any(e.startswith("status inválido") for e in errors)
    assert any(e.startswith("priority inválido") for e in errors)
    assert "category não pode ser nulo" in errors


def test_financial_status_membership():
    assert ticket_state.validate_financial_status("paid") == "paid"
    with pytest.raises(ValidationError):
        ticket_state.validate_financial_status("refunded")


def test_apply_changes_stamps_updated_at_and_skips_protected_fields():
    before = datetime(2024, 1, 1)
    record = SimpleNamespace(id="00001", status="aberto", assigned_to="x", updated_at=before, created_by="u")
    now = datetime(2024, 6, 1)

    changed = ticket_state.apply_changes(
        record, {"id": "99999", "status": "pendente", "assigned_to": None, "created_by": "v"}, now=now
    )

    assert changed == ["status", "assigned_to"]
    assert record.id == "00001"
    assert record.created_by == "u"
    assert record.assigned_to is None
    assert record.updated_at == now


def test_apply_changes_stamps_even_without_changes():
    record = SimpleNamespace(status="aberto", updated_at=datetime(2024, 1, 1))
    assert ticket_state.apply_changes(record, {"status": "aberto"}, now=datetime(2025, 1, 1)) == []
    assert record.updated_at == datetime(2025, 1, 1)


def test_default_stamp_is_naive_utc():
    record = SimpleNamespace(status="aberto", updated_at=None)
    before = datetime.now(timezone.utc).replace(tzinfo=None)

    ticket_state.apply_changes(record, {"status": "resolvido"})

    assert record.updated_at.tzinfo is None
    assert before <= record.updated_at <= before + timedelta(seconds=5)


def test_aware_datetimes_are_stored_as_naive_utc():
    aware = datetime(2030, 4, 1, 9, 30, tzinfo=timezone(timedelta(hours=-3)))
    assert to_naive_utc(aware) == datetime(2030, 4, 1, 12, 30)
    assert to_naive_utc(datetime(2030, 4, 1, 9, 30)) == datetime(2030, 4, 1, 9, 30)
