# helpdesk/services/user_service.py
import logging
import uuid
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..core.constants import UserRole
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..core.users import password_helper
from ..models.user import User
from ..schemas.user import UserCreate

logger = logging.getLogger(__name__)

VALID_ROLES = {r.value for r in UserRole}


class UserService:
    """
    User store: find_by_email, find_by_id, insert, list_all.
    Staff accounts are created by admins; technicians may only register clients.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_all(self) -> List[User]:
        result = await self.session.exec(select(User).order_by(User.created_at.desc()))
        return list(result.all())

    async def find_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        return await self.session.get(User, user_id)

    async def get_by_id(self, user_id: uuid.UUID) -> User:
        user = await self.find_by_id(user_id)
        if not user:
            raise NotFoundError("Usuário não encontrado")
        return user

    async def find_by_email(self, email: str, role: Optional[str] = None) -> Optional[User]:
        """Case-insensitive e-mail lookup, optionally restricted to one role."""
        statement = select(User).where(func.lower(User.email) == email.strip().lower())
        if role:
            statement = statement.where(User.role == role)
        result = await self.session.exec(statement)
        return result.first()

    async def insert(self, user: User) -> User:
        self.session.add(user)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise ConflictError("Email já está em uso")
        await self.session.refresh(user)
        return user

    async def create_user(self, user_create: UserCreate, created_by: Optional[User] = None) -> User:
        if user_create.role not in VALID_ROLES:
            raise ValidationError([f"role inválido: {user_create.role!r}"])
        if (
            created_by is not None
            and created_by.role != UserRole.ADMIN.value
            and user_create.role != UserRole.USER.value
        ):
            raise ValidationError(["Técnicos só podem cadastrar clientes (role 'user')"])

        if await self.find_by_email(user_create.email):
            raise ConflictError("Email já está em uso")

        db_user = User(
            email=user_create.email,
            hashed_password=password_helper.hash(user_create.password),
            name=user_create.name,
            role=user_create.role,
            avatar=user_create.avatar,
            company=user_create.company,
        )
        return await self.insert(db_user)

    async def create_client(self, name: str, email: str, company: Optional[str] = None) -> User:
        """
        Provisions a client account with an unusable random password; the
        client can set one later through the password reset flow.
        """
        client = User(
            email=email.strip(),
            hashed_password=password_helper.hash(password_helper.generate()),
            name=name,
            role=UserRole.USER.value,
            company=company,
        )
        user = await self.insert(client)
        logger.info(f"Client provisioned: {user.email} ({user.id})")
        return user

    async def delete_user(self, user_id: uuid.UUID) -> None:
        """
        Deletes the account. Tickets keep the dangling id and render a
        placeholder for it.
        """
        user = await self.get_by_id(user_id)
        await self.session.delete(user)
        await self.session.commit()
