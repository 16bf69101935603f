# helpdesk/services/ticket_state.py
"""
Status / assignment / queue transitions for tickets and financial tickets.

Any status may follow any other: the lifecycle is advisory, so validation is a
membership check against the enumerated values. Assignment and queue are
independent axes that may change in any status.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from ..core.constants import FinancialStatus, TicketCategory, TicketPriority, TicketStatus
from ..core.exceptions import ValidationError
from ..utils.timeutils import utcnow

TICKET_STATUSES = frozenset(s.value for s in TicketStatus)
TICKET_PRIORITIES = frozenset(p.value for p in TicketPriority)
TICKET_CATEGORIES = frozenset(c.value for c in TicketCategory)
FINANCIAL_STATUSES = frozenset(s.value for s in FinancialStatus)

INITIAL_STATUS = TicketStatus.ABERTO.value
TERMINAL_STATUSES = frozenset({TicketStatus.FECHADO.value, TicketStatus.ENCERRADO.value})

# Fields a patch may never touch: `id` is immutable once allocated.
PROTECTED_FIELDS = frozenset({"id", "created_at", "created_by"})


def _membership_error(field: str, value: Any, allowed: Iterable[str]) -> Optional[str]:
    value = getattr(value, "value", value)
    if value in allowed:
        return None
    return f"{field} inválido: {value!r} (permitidos: {', '.join(sorted(allowed))})"


def ticket_field_errors(fields: Dict[str, Any]) -> List[str]:
    """Collects every violation in a create/update payload, not just the first."""
    errors = []
    for name in ("title", "description"):
        if name in fields and not (fields[name] or "").strip():
            errors.append(f"{name} é obrigatório")
    checks = (
        ("status", TICKET_STATUSES),
        ("priority", TICKET_PRIORITIES),
        ("category", TICKET_CATEGORIES),
    )
    for name, allowed in checks:
        if name in fields and fields[name] is not None:
            error = _membership_error(name, fields[name], allowed)
            if error:
                errors.append(error)
        elif name in fields:
            errors.append(f"{name} não pode ser nulo")
    return errors


def validate_ticket_fields(fields: Dict[str, Any]) -> None:
    errors = ticket_field_errors(fields)
    if errors:
        raise ValidationError(errors)


def validate_financial_status(status: Any) -> str:
    error = _membership_error("status", status, FINANCIAL_STATUSES)
    if error:
        raise ValidationError([error])
    return getattr(status, "value", status)


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def apply_changes(record: Any, changes: Dict[str, Any], now: Optional[datetime] = None) -> List[str]:
    """
    Applies already-validated changes in place and stamps `updated_at`.
    Returns the names of the fields whose value actually changed.
    """
    changed = []
    for key, value in changes.items():
        if key in PROTECTED_FIELDS or not hasattr(record, key):
            continue
        value = getattr(value, "value", value)
        if getattr(record, key) != value:
            changed.append(key)
        setattr(record, key, value)
    record.updated_at = now or utcnow()
    return changed
