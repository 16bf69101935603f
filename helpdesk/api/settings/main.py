# helpdesk/api/settings/main.py
from fastapi import APIRouter, Depends, Request
from sqlmodel.ext.asyncio.session import AsyncSession

from ...core.audit import log_action
from ...core.users import require_admin
from ...db.engine import get_session
from ...models.user import User
from ...services.settings_service import ErpSecretStore
from .models import ErpSettingsRequest, ErpSettingsResponse

router = APIRouter()


async def get_secret_store(session: AsyncSession = Depends(get_session)) -> ErpSecretStore:
    return ErpSecretStore(session)


@router.get("/settings/erp", response_model=ErpSettingsResponse)
async def api_get_erp_settings(
    store: ErpSecretStore = Depends(get_secret_store),
    current_user: User = Depends(require_admin),
):
    """ERP integration settings; the API key is masked."""
    config = await store.load()
    return config.masked()


@router.put("/settings/erp", response_model=ErpSettingsResponse)
async def api_update_erp_settings(
    settings_update: ErpSettingsRequest,
    request: Request,
    store: ErpSecretStore = Depends(get_secret_store),
    current_user: User = Depends(require_admin),
):
    config = await store.save(**settings_update.model_dump(exclude_unset=True))
    log_action(
        "UPDATE",
        "settings",
        "erp",
        user=current_user,
        request=request,
        details={"fields": sorted(settings_update.model_fields_set)},
    )
    return config.masked()
