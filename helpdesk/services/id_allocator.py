# helpdesk/services/id_allocator.py
"""
Sequential display identifiers for tickets ("00007") and financial tickets ("FT-00007").

The next id is derived by a max-scan over the ids that already exist, so gaps
left by deletions are tolerated. Two creators reading the same snapshot will
compute the same candidate; the loser hits the primary-key constraint and
walks forward (`insert_with_allocated_id`), up to a bounded number of attempts.
"""

import logging
from typing import Callable, Iterable, Optional, Type, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import FlushError
from sqlmodel import SQLModel, select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..core.constants import ID_ALLOCATION_MAX_ATTEMPTS, TICKET_ID_WIDTH
from ..core.exceptions import AllocationError

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=SQLModel)


def numeric_part(identifier: str, prefix: str = "") -> Optional[int]:
    """Returns the numeric value of an id, or None for legacy/non-numeric ids."""
    if not isinstance(identifier, str):
        return None
    if prefix:
        if not identifier.startswith(prefix):
            return None
        identifier = identifier[len(prefix):]
    if not (identifier.isascii() and identifier.isdigit()):
        return None
    return int(identifier)


def format_id(value: int, prefix: str = "") -> str:
    return f"{prefix}{value:0{TICKET_ID_WIDTH}d}"


def allocate(existing_ids: Iterable[str], prefix: str = "") -> str:
    """
    Next id for a ticket class: max numeric id + 1, zero padded, prefix re-applied.

    >>> allocate({"00001", "00007", "legacy-3"})
    '00008'
    >>> allocate(set(), prefix="FT-")
    'FT-00001'
    """
    values = [n for n in (numeric_part(i, prefix) for i in existing_ids) if n is not None]
    return format_id(max(values, default=0) + 1, prefix)


def next_candidate(candidate: str, prefix: str = "") -> str:
    return format_id((numeric_part(candidate, prefix) or 0) + 1, prefix)


async def load_existing_ids(session: AsyncSession, model: Type[SQLModel]) -> set[str]:
    result = await session.exec(select(model.id))
    return set(result.all())


async def insert_with_allocated_id(
    session: AsyncSession,
    model: Type[ModelType],
    build: Callable[[str], ModelType],
    prefix: str = "",
    existing_ids: Optional[Iterable[str]] = None,
    max_attempts: int = ID_ALLOCATION_MAX_ATTEMPTS,
) -> ModelType:
    """
    Inserts the record returned by `build(candidate_id)` and commits it.

    On a primary-key collision the candidate is bumped by one and the insert
    retried. An IntegrityError caused by anything other than the id (the
    candidate row does not exist after rollback) is re-raised untouched so the
    caller can handle its own constraints.

    Raises:
        AllocationError: when `max_attempts` collisions happened in a row.
    """
    if existing_ids is None:
        existing_ids = await load_existing_ids(session, model)
    candidate = allocate(existing_ids, prefix)

    for attempt in range(1, max_attempts + 1):
        record = build(candidate)
        session.add(record)
        try:
            await session.commit()
        except (IntegrityError, FlushError):
            # rollback expires every instance held by the session
            await session.rollback()
            if await session.get(model, candidate) is None:
                raise
            logger.info(
                f"{model.__name__} id {candidate} already taken "
                f"(attempt {attempt}/{max_attempts}), retrying"
            )
            candidate = next_candidate(candidate, prefix)
            continue
        await session.refresh(record)
        return record

    logger.error(
        f"Could not allocate a {model.__name__} id after {max_attempts} attempts "
        f"(last candidate {candidate}); write contention is too high"
    )
    raise AllocationError(
        f"Não foi possível gerar um identificador para {model.__name__} após {max_attempts} tentativas"
    )
