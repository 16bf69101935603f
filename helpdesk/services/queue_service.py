# helpdesk/services/queue_service.py
import logging
import uuid
from typing import Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..core.constants import DEFAULT_QUEUE_NAME, N2_QUEUE_NAME
from ..models.ticket import Queue

logger = logging.getLogger(__name__)

# Offline clients send "queue-n1…"/"queue-n2…" placeholders instead of real queues.
QUEUE_ALIASES = (
    ("queue-n1", DEFAULT_QUEUE_NAME),
    ("queue-n2", N2_QUEUE_NAME),
)


def normalize_queue_value(value: str) -> str:
    lowered = value.lower()
    for prefix, name in QUEUE_ALIASES:
        if lowered.startswith(prefix):
            return name
    return value


def _as_uuid(value: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class QueueService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_name(self, name: str) -> Optional[Queue]:
        result = await self.session.exec(
            select(Queue).where(func.lower(Queue.name) == name.lower())
        )
        return result.first()

    async def get_or_create(self, name: str, description: Optional[str] = None) -> Queue:
        queue = await self.get_by_name(name)
        if queue:
            return queue

        queue = Queue(name=name, description=description)
        self.session.add(queue)
        try:
            await self.session.commit()
        except IntegrityError:
            # Created concurrently by another request
            await self.session.rollback()
            existing = await self.get_by_name(name)
            if existing is None:
                raise
            return existing
        await self.session.refresh(queue)
        logger.info(f"Queue created: {queue.name}")
        return queue

    async def default_queue(self) -> Queue:
        return await self.get_or_create(DEFAULT_QUEUE_NAME, "Fila padrão de suporte nível 1")

    async def resolve(self, value: Optional[str]) -> Tuple[Optional[uuid.UUID], Optional[str]]:
        """
        Maps a queue id or name to (queue_id, queue_name).
        None or "" means "no queue"; an unknown name creates the queue.
        """
        if value is None or value == "":
            return None, None

        queue_uuid = _as_uuid(value)
        if queue_uuid is not None:
            queue = await self.session.get(Queue, queue_uuid)
            if queue:
                return queue.id, queue.name

        queue = await self.get_or_create(
            normalize_queue_value(value),
            "Fila criada automaticamente ao transferir chamado",
        )
        return queue.id, queue.name
