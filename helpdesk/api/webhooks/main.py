# helpdesk/api/webhooks/main.py
"""
Inbound ERP webhooks. The caller authenticates with the `X-API-Key` header
when an API key is configured; the payload is validated by the
reconciliation engine so that every violation is reported at once.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlmodel.ext.asyncio.session import AsyncSession

from ...core.audit import log_action
from ...core.config import settings
from ...core.limiter import limiter
from ...db.engine import get_session
from ...schemas.financial import ReconcileResult
from ...services.erp_service import ERPReconciliationService
from ...services.settings_service import ErpIntegrationConfig, ErpSecretStore
from ...utils.security import secrets_match

logger = logging.getLogger(__name__)

router = APIRouter()

RESULT_STATUS = {
    None: status.HTTP_200_OK,
    "validation": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "not_found": status.HTTP_404_NOT_FOUND,
    "conflict": status.HTTP_409_CONFLICT,
    "allocation": status.HTTP_503_SERVICE_UNAVAILABLE,
    "storage": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


# --- Dependency Injectors ---
async def get_erp_config(session: AsyncSession = Depends(get_session)) -> ErpIntegrationConfig:
    return await ErpSecretStore(session).load()


async def verify_api_key(
    request: Request,
    x_api_key: Optional[str] = Header(default=None),
    config: ErpIntegrationConfig = Depends(get_erp_config),
) -> None:
    if not config.api_key:
        return
    if not secrets_match(x_api_key, config.api_key):
        logger.warning(f"Webhook rejected: invalid API key for {request.url.path}")
        log_action(
            "WEBHOOK",
            "erp",
            request.url.path,
            request=request,
            status="failure",
            details={"error": "invalid api key"},
        )
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="API Key inválida")


def get_reconciliation_service(
    session: AsyncSession = Depends(get_session),
    config: ErpIntegrationConfig = Depends(get_erp_config),
) -> ERPReconciliationService:
    return ERPReconciliationService(session, config)


def _respond(request: Request, event: str, payload: Dict[str, Any], result: ReconcileResult) -> JSONResponse:
    log_action(
        "RECONCILE",
        "financial_ticket",
        result.ticket_id or str(payload.get("erpTicketId") or payload.get("erpId") or "unknown"),
        request=request,
        status="success" if result.success else "failure",
        details={
            "event": event,
            "erpType": payload.get("erpType"),
            "erpId": payload.get("erpId"),
            "error": result.error,
        },
    )
    return JSONResponse(
        status_code=RESULT_STATUS.get(result.error, status.HTTP_400_BAD_REQUEST),
        content=result.model_dump(mode="json", by_alias=True),
    )


@router.post(
    "/webhooks/erp/ticket",
    response_model=ReconcileResult,
    dependencies=[Depends(verify_api_key)],
)
@limiter.limit(settings.webhook_rate_limit)
async def erp_ticket_webhook(
    request: Request,
    payload: Dict[str, Any] = Body(...),
    service: ERPReconciliationService = Depends(get_reconciliation_service),
):
    """Invoice (boleto) created or corrected in the ERP."""
    result = await service.reconcile_ticket(payload)
    return _respond(request, "ticket", payload, result)


@router.post(
    "/webhooks/erp/payment",
    response_model=ReconcileResult,
    dependencies=[Depends(verify_api_key)],
)
@limiter.limit(settings.webhook_rate_limit)
async def erp_payment_webhook(
    request: Request,
    payload: Dict[str, Any] = Body(...),
    service: ERPReconciliationService = Depends(get_reconciliation_service),
):
    """Payment confirmed in the ERP for a previously pushed invoice."""
    result = await service.reconcile_payment(payload)
    return _respond(request, "payment", payload, result)
