# helpdesk/services/ticket_service.py
"""
Support ticket operations: create (sequential id), update (state machine),
role-scoped listing and hydrated reads, comments and deletion.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..core.exceptions import AccessDeniedError, NotFoundError, StorageError, ValidationError
from ..models.ticket import Comment, Queue, Ticket, TicketFile
from ..models.user import User
from ..schemas.ticket import CommentView, FileUpload, TicketCreate, TicketFilters, TicketUpdate, TicketView
from . import ticket_state
from .id_allocator import insert_with_allocated_id
from .queue_service import QueueService
from .ticket_resolver import TicketResolver, file_view, user_ref
from .visibility import can_view, scope

logger = logging.getLogger(__name__)


class TicketService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.resolver = TicketResolver(session)
        self.queues = QueueService(session)

    # --- Reads ---

    async def list_tickets(
        self, role: str, user_id: uuid.UUID, filters: Optional[TicketFilters] = None
    ) -> List[TicketView]:
        """Visibility scope first, then the caller's filters; most recently updated first."""
        return await self.resolver.resolve_all(filters, scope_condition=scope(role, user_id))

    async def get_ticket(
        self, ticket_id: str, role: Optional[str] = None, user_id: Optional[uuid.UUID] = None
    ) -> TicketView:
        ticket = await self.resolver.resolve(ticket_id)
        if role is not None:
            queue_name = ticket.queue.name if ticket.queue else None
            if not can_view(role, user_id, ticket.created_by, queue_name):
                raise AccessDeniedError("Acesso negado")
        return ticket

    # --- Writes ---

    async def create_ticket(self, data: TicketCreate) -> TicketView:
        ticket_state.validate_ticket_fields(
            {
                "title": data.title,
                "description": data.description,
                "priority": data.priority,
                "category": data.category,
            }
        )

        if data.queue_id:
            queue_id, _ = await self.queues.resolve(data.queue_id)
        else:
            queue_id = (await self.queues.default_queue()).id

        def build(ticket_id: str) -> Ticket:
            return Ticket(
                id=ticket_id,
                title=data.title,
                description=data.description,
                status=ticket_state.INITIAL_STATUS,
                priority=data.priority,
                category=data.category,
                created_by=data.created_by,
                client_id=data.client_id or data.created_by,
                assigned_to=data.assigned_to,
                queue_id=queue_id,
            )

        ticket = await insert_with_allocated_id(self.session, Ticket, build)
        ticket_id = ticket.id
        logger.info(f"Ticket {ticket_id} created by {data.created_by}: {data.title}")

        if data.files:
            await self._save_files(ticket_id, data.files)

        return await self.resolver.resolve(ticket_id)

    async def update_ticket(
        self, ticket_id: str, patch: TicketUpdate, updated_by: Optional[uuid.UUID] = None
    ) -> TicketView:
        ticket = await self.session.get(Ticket, ticket_id)
        if not ticket:
            raise NotFoundError(f"Chamado não encontrado. ID: {ticket_id}")
        previous_queue_id = ticket.queue_id
        creator_id = ticket.created_by

        changes = patch.model_dump(exclude_unset=True)
        updated_by = changes.pop("updated_by", None) or updated_by
        ticket_state.validate_ticket_fields(changes)

        queue_changed = False
        queue_name = previous_queue_name = None
        if "queue_id" in changes:
            previous_queue_name = await self._queue_name(previous_queue_id)
            queue_id, queue_name = await self.queues.resolve(changes["queue_id"])
            changes["queue_id"] = queue_id
            queue_changed = queue_id != previous_queue_id

        # Queue resolution may have rolled back; re-read the row
        ticket = await self.session.get(Ticket, ticket_id)
        if not ticket:
            raise NotFoundError(f"Chamado não encontrado. ID: {ticket_id}")
        changed = ticket_state.apply_changes(ticket, changes)
        self.session.add(ticket)
        await self.session.commit()

        if "assigned_to" in changed:
            logger.info(f"Ticket {ticket_id} assigned to {changes['assigned_to'] or 'ninguém'}")
        if "status" in changed and ticket_state.is_terminal(changes["status"]):
            logger.info(f"Ticket {ticket_id} closed with status {changes['status']}")

        if queue_changed and queue_name:
            await self._record_queue_transfer(
                ticket_id, updated_by or creator_id, previous_queue_name, queue_name
            )

        return await self.resolver.resolve(ticket_id)

    async def delete_ticket(self, ticket_id: str) -> None:
        """Deletes the ticket together with its comments and files."""
        ticket = await self.session.get(Ticket, ticket_id)
        if not ticket:
            raise NotFoundError(f"Chamado não encontrado. ID: {ticket_id}")

        files = (await self.session.exec(select(TicketFile).where(TicketFile.ticket_id == ticket_id))).all()
        comments = (await self.session.exec(select(Comment).where(Comment.ticket_id == ticket_id))).all()
        for record in [*files, *comments]:
            await self.session.delete(record)
        await self.session.delete(ticket)
        await self.session.commit()
        logger.info(
            f"Ticket {ticket_id} deleted with {len(comments)} comment(s) and {len(files)} file(s)"
        )

    async def add_comment(
        self,
        ticket_id: str,
        author_id: uuid.UUID,
        content: str,
        files: Optional[List[FileUpload]] = None,
    ) -> CommentView:
        ticket = await self.session.get(Ticket, ticket_id)
        if not ticket:
            raise NotFoundError(f"Chamado não encontrado. ID: {ticket_id}")
        if not (content or "").strip():
            raise ValidationError(["Conteúdo do comentário é obrigatório"])

        comment = Comment(ticket_id=ticket_id, author_id=author_id, content=content)
        self.session.add(comment)
        await self.session.commit()
        await self.session.refresh(comment)

        saved = await self._save_files(ticket_id, files or [], comment_id=comment.id)
        author = await self.session.get(User, author_id)
        return CommentView(
            id=comment.id,
            content=comment.content,
            author=user_ref(author_id, author),
            created_at=comment.created_at,
            files=[file_view(f) for f in saved],
        )

    # --- Helpers ---

    async def _save_files(
        self, ticket_id: str, files: List[FileUpload], comment_id: Optional[uuid.UUID] = None
    ) -> List[TicketFile]:
        """Files are written after their owner, as a separate operation."""
        if not files:
            return []
        records = [
            TicketFile(
                ticket_id=ticket_id,
                comment_id=comment_id,
                name=f.name,
                size=f.size,
                type=f.type,
                data_url=f.data_url,
            )
            for f in files
        ]
        self.session.add_all(records)
        try:
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error(f"Files for ticket {ticket_id} were not saved: {exc}")
            raise StorageError(f"Chamado {ticket_id} salvo, mas os anexos não foram gravados") from exc
        for record in records:
            await self.session.refresh(record)
        return records

    async def _queue_name(self, queue_id: Optional[uuid.UUID]) -> Optional[str]:
        if queue_id is None:
            return None
        queue = await self.session.get(Queue, queue_id)
        return queue.name if queue else None

    async def _record_queue_transfer(
        self,
        ticket_id: str,
        author_id: uuid.UUID,
        previous_queue: Optional[str],
        new_queue: str,
    ) -> None:
        """Leaves a trail comment; failing to write it does not fail the update."""
        try:
            author = await self.session.get(User, author_id)
            author_name = author.name if author else "Sistema"
            if previous_queue and previous_queue != new_queue:
                content = f'Chamado transferido de "{previous_queue}" para "{new_queue}" por {author_name}'
            elif not previous_queue:
                content = f'Chamado atribuído à fila "{new_queue}" por {author_name}'
            else:
                return
            self.session.add(Comment(ticket_id=ticket_id, author_id=author_id, content=content))
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.warning(f"Could not record queue transfer for ticket {ticket_id}: {exc}")
