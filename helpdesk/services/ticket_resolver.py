# helpdesk/services/ticket_resolver.py
"""
Assembles fully hydrated ticket views (creator, assignee, client, queue,
files, comments) from normalized storage.

Dangling references never fail a read:
- a null reference hydrates to None
- a non-null reference whose user row is gone hydrates to a DanglingUser placeholder

Primary path: one statement outer-joining users and queue. If it fails, the
same logical query is retried with direct lookups only (tickets first, then one
`session.get` per referenced row). Only a failure of that fallback propagates,
as StorageError.
"""

import logging
import uuid
from collections import defaultdict
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import desc, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import aliased
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..core.constants import MISSING_CLIENT_NAME, MISSING_USER_NAME
from ..core.exceptions import NotFoundError, StorageError
from ..models.ticket import Comment, Queue, Ticket, TicketFile
from ..models.user import User
from ..schemas.ticket import CommentView, FileView, QueueView, TicketFilters, TicketView
from ..schemas.user import DanglingUser, ResolvedUser

logger = logging.getLogger(__name__)

# (ticket, creator, assignee, client, queue)
TicketRow = Tuple[Ticket, Optional[User], Optional[User], Optional[User], Optional[Queue]]


def user_ref(user_id: Optional[uuid.UUID], user: Optional[User], missing_name: str = MISSING_USER_NAME):
    """Resolved(User) | Dangling(id) | None."""
    if user_id is None:
        return None
    if user is None:
        return DanglingUser(id=user_id, name=missing_name)
    return ResolvedUser.model_validate(user)


def file_view(f: TicketFile) -> FileView:
    return FileView(id=f.id, name=f.name, size=f.size, type=f.type, data=f.data_url)


def _contains(term: str) -> str:
    """LIKE pattern matching `term` literally; pair with escape="\\"."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def build_conditions(filters: Optional[TicketFilters]) -> List[Any]:
    """Caller-supplied filters as SQL predicates (the visibility scope goes first, separately)."""
    if filters is None:
        return []
    conditions = []
    if filters.status:
        conditions.append(Ticket.status == filters.status)
    if filters.priority:
        conditions.append(Ticket.priority == filters.priority)
    if filters.category:
        conditions.append(Ticket.category == filters.category)
    if filters.assigned_to:
        conditions.append(Ticket.assigned_to == filters.assigned_to)
    if filters.created_by:
        conditions.append(Ticket.created_by == filters.created_by)
    if filters.queue:
        matching_queues = select(Queue.id).where(
            func.lower(Queue.name).like(_contains(filters.queue.lower()), escape="\\")
        )
        conditions.append(col(Ticket.queue_id).in_(matching_queues))
    if filters.search:
        term = _contains(filters.search)
        conditions.append(
            or_(
                col(Ticket.title).ilike(term, escape="\\"),
                col(Ticket.description).ilike(term, escape="\\"),
            )
        )
    return conditions


class TicketResolver:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def resolve(self, ticket_id: str) -> TicketView:
        views = await self._resolve_where([Ticket.id == ticket_id])
        if not views:
            raise NotFoundError(f"Chamado não encontrado. ID: {ticket_id}")
        return views[0]

    async def resolve_all(
        self,
        filters: Optional[TicketFilters] = None,
        scope_condition: Optional[Any] = None,
    ) -> List[TicketView]:
        """Hydrated tickets matching `scope_condition` and `filters`, most recently updated first."""
        conditions = [] if scope_condition is None else [scope_condition]
        conditions.extend(build_conditions(filters))
        return await self._resolve_where(conditions)

    async def _resolve_where(self, conditions: Sequence[Any]) -> List[TicketView]:
        try:
            rows = await self._fetch_joined(conditions)
        except SQLAlchemyError as exc:
            logger.warning(f"Joined ticket query failed ({exc}); falling back to direct lookups")
            await self.session.rollback()
            try:
                rows = await self._fetch_direct(conditions)
            except SQLAlchemyError as fallback_exc:
                logger.error(f"Direct ticket lookup failed as well: {fallback_exc}")
                raise StorageError("Falha ao consultar chamados") from fallback_exc

        views = []
        for row in rows:
            files = await self._load_files(row[0].id)
            comments = await self._load_comments(row[0].id)
            views.append(self._to_view(row, files, comments))
        return views

    # --- Lookup paths ---

    async def _fetch_joined(self, conditions: Sequence[Any]) -> List[TicketRow]:
        creator = aliased(User)
        assignee = aliased(User)
        client = aliased(User)
        statement = (
            select(Ticket, creator, assignee, client, Queue)
            .outerjoin(creator, creator.id == Ticket.created_by)
            .outerjoin(assignee, assignee.id == Ticket.assigned_to)
            .outerjoin(client, client.id == Ticket.client_id)
            .outerjoin(Queue, Queue.id == Ticket.queue_id)
            .where(*conditions)
            .order_by(desc(Ticket.updated_at))
        )
        result = await self.session.exec(statement)
        return [tuple(row) for row in result.all()]

    async def _fetch_direct(self, conditions: Sequence[Any]) -> List[TicketRow]:
        statement = select(Ticket).where(*conditions).order_by(desc(Ticket.updated_at))
        result = await self.session.exec(statement)
        tickets = result.all()

        users: Dict[uuid.UUID, Optional[User]] = {}
        queues: Dict[uuid.UUID, Optional[Queue]] = {}

        async def lookup(cache, model, key):
            if key is None:
                return None
            if key not in cache:
                cache[key] = await self.session.get(model, key)
            return cache[key]

        rows = []
        for ticket in tickets:
            rows.append((
                ticket,
                await lookup(users, User, ticket.created_by),
                await lookup(users, User, ticket.assigned_to),
                await lookup(users, User, ticket.client_id),
                await lookup(queues, Queue, ticket.queue_id),
            ))
        return rows

    # --- Per-ticket evidence (best effort) ---

    async def _load_files(self, ticket_id: str) -> List[TicketFile]:
        try:
            result = await self.session.exec(
                select(TicketFile)
                .where(TicketFile.ticket_id == ticket_id)
                .order_by(TicketFile.created_at)
            )
            return list(result.all())
        except SQLAlchemyError as exc:
            logger.warning(f"Could not load files for ticket {ticket_id}: {exc}")
            return []

    async def _load_comments(self, ticket_id: str) -> List[Tuple[Comment, Optional[User]]]:
        try:
            result = await self.session.exec(
                select(Comment, User)
                .outerjoin(User, User.id == Comment.author_id)
                .where(Comment.ticket_id == ticket_id)
                .order_by(Comment.created_at)
            )
            return [tuple(row) for row in result.all()]
        except SQLAlchemyError as exc:
            logger.warning(f"Could not load comments for ticket {ticket_id}: {exc}")
            return []

    # --- Assembly ---

    def _to_view(
        self,
        row: TicketRow,
        files: List[TicketFile],
        comments: List[Tuple[Comment, Optional[User]]],
    ) -> TicketView:
        ticket, creator, assignee, client, queue = row

        ticket_files = []
        files_by_comment = defaultdict(list)
        for f in files:
            if f.comment_id:
                files_by_comment[f.comment_id].append(file_view(f))
            else:
                ticket_files.append(file_view(f))

        comment_views = [
            CommentView(
                id=comment.id,
                content=comment.content,
                author=user_ref(comment.author_id, author),
                created_at=comment.created_at,
                files=files_by_comment.get(comment.id, []),
            )
            for comment, author in comments
        ]

        return TicketView(
            id=ticket.id,
            title=ticket.title,
            description=ticket.description,
            status=ticket.status,
            priority=ticket.priority,
            category=ticket.category,
            created_by=ticket.created_by,
            client_id=ticket.client_id,
            assigned_to=ticket.assigned_to,
            queue_id=ticket.queue_id,
            created_by_user=user_ref(ticket.created_by, creator),
            assigned_to_user=user_ref(ticket.assigned_to, assignee),
            client_user=user_ref(ticket.client_id, client, MISSING_CLIENT_NAME),
            queue=QueueView(id=queue.id, name=queue.name, description=queue.description) if queue else None,
            files=ticket_files,
            comments=comment_views,
            created_at=ticket.created_at,
            updated_at=ticket.updated_at,
        )
