# helpdesk/services/settings_service.py
import logging
from typing import Dict, FrozenSet, Optional

from pydantic import BaseModel, ConfigDict
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..core.config import Settings, settings as app_settings
from ..core.constants import ERPType
from ..core.exceptions import ValidationError
from ..models.setting import Setting
from ..utils.security import decrypt_data, encrypt_data, mask_secret
from ..utils.timeutils import utcnow

logger = logging.getLogger(__name__)

ERP_API_KEY = "erp_webhook_api_key"
ERP_SYSTEM_USER_EMAIL = "erp_system_user_email"
ERP_ALLOWED_TYPES = "erp_allowed_types"

ALL_ERP_TYPES = frozenset(t.value for t in ERPType)


class SettingsService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_all_settings(self) -> Dict[str, str]:
        result = await self.session.exec(select(Setting))
        return {s.key: s.value for s in result.all()}

    async def get_setting(self, key: str) -> Optional[str]:
        setting = await self.session.get(Setting, key)
        return setting.value if setting else None

    async def update_settings(self, settings_to_update: Dict[str, str]) -> None:
        for key, value in settings_to_update.items():
            setting = await self.session.get(Setting, key)
            if setting:
                setting.value = value
                setting.updated_at = utcnow()
            else:
                setting = Setting(key=key, value=value)
            self.session.add(setting)
        await self.session.commit()

    async def delete_setting(self, key: str) -> None:
        setting = await self.session.get(Setting, key)
        if setting:
            await self.session.delete(setting)
            await self.session.commit()


class ErpIntegrationConfig(BaseModel):
    """Everything the reconciliation engine needs to know about the ERP integration."""

    model_config = ConfigDict(frozen=True)

    api_key: Optional[str] = None
    system_user_email: Optional[str] = None
    allowed_types: FrozenSet[str] = ALL_ERP_TYPES

    def accepts(self, erp_type: str) -> bool:
        return erp_type in self.allowed_types

    def masked(self) -> Dict[str, object]:
        return {
            "api_key": mask_secret(self.api_key),
            "api_key_configured": bool(self.api_key),
            "system_user_email": self.system_user_email,
            "allowed_types": sorted(self.allowed_types),
        }


class ErpSecretStore:
    """
    Reads and writes the ERP integration settings.

    Values in the settings table win; environment variables are the fallback
    used until an admin stores something. The API key is stored encrypted.
    """

    def __init__(self, session: AsyncSession, env: Optional[Settings] = None):
        self.settings = SettingsService(session)
        self.env = env or app_settings

    async def load(self) -> ErpIntegrationConfig:
        stored = await self.settings.get_all_settings()

        api_key = stored.get(ERP_API_KEY)
        api_key = decrypt_data(api_key) if api_key else self.env.erp_webhook_api_key

        allowed = stored.get(ERP_ALLOWED_TYPES)
        allowed_types = (
            frozenset(t.strip().lower() for t in allowed.split(",") if t.strip())
            if allowed
            else ALL_ERP_TYPES
        )

        return ErpIntegrationConfig(
            api_key=api_key or None,
            system_user_email=stored.get(ERP_SYSTEM_USER_EMAIL) or self.env.erp_system_user_email,
            allowed_types=allowed_types,
        )

    async def save(
        self,
        api_key: Optional[str] = None,
        system_user_email: Optional[str] = None,
        allowed_types: Optional[list[str]] = None,
    ) -> ErpIntegrationConfig:
        """Stores only the values given; an empty string removes the stored value."""
        updates: Dict[str, str] = {}
        removals = []

        if api_key is not None:
            if api_key:
                updates[ERP_API_KEY] = encrypt_data(api_key)
            else:
                removals.append(ERP_API_KEY)

        if system_user_email is not None:
            if system_user_email:
                updates[ERP_SYSTEM_USER_EMAIL] = system_user_email.strip()
            else:
                removals.append(ERP_SYSTEM_USER_EMAIL)

        if allowed_types is not None:
            normalized = sorted({t.strip().lower() for t in allowed_types if t.strip()})
            unknown = [t for t in normalized if t not in ALL_ERP_TYPES]
            if unknown:
                raise ValidationError([f"erpType inválido: {t}" for t in unknown])
            if normalized:
                updates[ERP_ALLOWED_TYPES] = ",".join(normalized)
            else:
                removals.append(ERP_ALLOWED_TYPES)

        if updates:
            await self.settings.update_settings(updates)
        for key in removals:
            await self.settings.delete_setting(key)

        logger.info(f"ERP integration settings updated: {sorted([*updates, *removals])}")
        return await self.load()
