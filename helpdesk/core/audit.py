# helpdesk/core/audit.py
"""
Audit trail for destructive and security-relevant actions (deletions,
settings changes, ERP reconciliation outcomes), written as JSON lines to a
dedicated file so it can be reviewed independently of the application log.
"""
import json
import logging
import os
from datetime import datetime, timezone
from typing import Optional

from fastapi import Request

from ..models.user import User

LOG_DIR = "logs"
AUDIT_LOG_FILE = os.path.join(LOG_DIR, "audit.log")

audit_logger = logging.getLogger("audit")
audit_logger.setLevel(logging.INFO)
audit_logger.propagate = False


def _ensure_handler() -> None:
    if audit_logger.handlers:
        return
    os.makedirs(LOG_DIR, exist_ok=True)
    file_handler = logging.FileHandler(AUDIT_LOG_FILE, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter("%(message)s"))
    audit_logger.addHandler(file_handler)


def client_ip(request: Optional[Request]) -> str:
    if request is None:
        return "unknown"
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def log_action(
    action: str,
    resource_type: str,
    resource_id: str,
    user: Optional[User] = None,
    request: Optional[Request] = None,
    details: Optional[dict] = None,
    status: str = "success",
) -> None:
    """
    Log a security-relevant action to the audit log.

    Args:
        action: The action performed (e.g., "DELETE", "UPDATE", "RECONCILE")
        resource_type: Type of resource affected (e.g., "ticket", "financial_ticket", "settings")
        resource_id: Identifier of the affected resource
        user: The User who performed the action; None for webhook callers
        request: FastAPI Request object to extract the client IP
        details: Additional context dictionary
        status: "success" or "failure"
    """
    _ensure_handler()
    log_entry = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "action": action.upper(),
        "resource_type": resource_type,
        "resource_id": str(resource_id),
        "user": user.email if user else "anonymous",
        "user_role": user.role if user else "unknown",
        "ip_address": client_ip(request),
        "status": status,
    }
    if details:
        log_entry["details"] = details

    audit_logger.info(json.dumps(log_entry, ensure_ascii=False, default=str))
