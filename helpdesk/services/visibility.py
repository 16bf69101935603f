# helpdesk/services/visibility.py
"""
Role-scoped visibility for ticket listings.

`scope(role, user_id)` returns the predicate that narrows a ticket query to
what the requester may see, or None for full visibility. It is applied before
any caller-supplied filter.
"""

import uuid
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import col, select

from ..core.constants import N2_QUEUE_MARKER, N2_QUEUE_NAME, UserRole
from ..models.ticket import Queue, Ticket

FULL_VISIBILITY_ROLES = {UserRole.ADMIN.value, UserRole.TECHNICIAN.value}


def n2_queue_ids():
    """Subquery of queues routed to second-level support."""
    return select(Queue.id).where(
        or_(
            func.lower(Queue.name) == N2_QUEUE_NAME.lower(),
            col(Queue.name).ilike(f"%{N2_QUEUE_MARKER}%"),
        )
    )


def scope(role: str, user_id: uuid.UUID) -> Optional[ColumnElement]:
    """
    First match wins:
    - user: only tickets they created
    - technician_n2: only tickets currently in an N2 queue, regardless of assignment
    - admin / technician: no restriction
    Any other role (e.g. financial) sees only the tickets it created.
    """
    role = getattr(role, "value", role)

    if role == UserRole.USER.value:
        return Ticket.created_by == user_id
    if role == UserRole.TECHNICIAN_N2.value:
        return col(Ticket.queue_id).in_(n2_queue_ids())
    if role in FULL_VISIBILITY_ROLES:
        return None
    return Ticket.created_by == user_id


def can_view(role: str, user_id: uuid.UUID, created_by: uuid.UUID, queue_name: Optional[str]) -> bool:
    """Same rules as `scope`, evaluated against an already loaded ticket."""
    role = getattr(role, "value", role)

    if role in FULL_VISIBILITY_ROLES:
        return True
    if role == UserRole.TECHNICIAN_N2.value:
        return bool(queue_name) and N2_QUEUE_MARKER.lower() in queue_name.lower()
    return created_by == user_id
