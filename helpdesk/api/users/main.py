# helpdesk/api/users/main.py
import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlmodel.ext.asyncio.session import AsyncSession

from ...core.audit import log_action
from ...core.users import require_admin, require_staff
from ...db.engine import get_session
from ...models.user import User
from ...schemas.user import UserCreate, UserRead
from ...services.user_service import UserService

router = APIRouter()


def get_user_service(session: AsyncSession = Depends(get_session)) -> UserService:
    return UserService(session)


@router.get("/users", response_model=List[UserRead])
async def api_get_all_users(
    service: UserService = Depends(get_user_service),
    current_user: User = Depends(require_staff),
):
    return await service.list_all()


@router.post("/users", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def api_create_user(
    user_data: UserCreate,
    service: UserService = Depends(get_user_service),
    current_user: User = Depends(require_staff),
):
    """Admins create any role; technicians may only register clients."""
    return await service.create_user(user_data, created_by=current_user)


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def api_delete_user(
    user_id: uuid.UUID,
    request: Request,
    service: UserService = Depends(get_user_service),
    current_user: User = Depends(require_admin),
):
    if user_id == current_user.id:
        raise HTTPException(status_code=403, detail="Você não pode excluir a sua própria conta.")
    await service.delete_user(user_id)
    log_action("DELETE", "user", str(user_id), user=current_user, request=request)
