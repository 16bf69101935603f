# helpdesk/schemas/financial.py
"""
Schemas for financial tickets and the ERP webhook payloads.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel

from ..core.constants import ERPType
from .user import UserRef

_DATETIME = TypeAdapter(datetime)


class FileBlob(BaseModel):
    name: str
    size: int = 0
    type: str = "application/octet-stream"
    data: str


class FileBlobView(FileBlob):
    id: str


class FinancialTicketCreate(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    amount: Decimal = Field(gt=0)
    due_date: date
    payment_date: Optional[datetime] = None
    status: str = "pending"
    client_id: uuid.UUID
    created_by: Optional[uuid.UUID] = None
    invoice_file: Optional[FileBlob] = None
    receipt_file: Optional[FileBlob] = None
    notes: Optional[str] = None
    erp_id: Optional[str] = None
    erp_type: Optional[str] = None
    invoice_number: Optional[str] = None
    barcode: Optional[str] = None
    our_number: Optional[str] = None
    payment_erp_id: Optional[str] = None
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None
    erp_metadata: Optional[Dict[str, Any]] = None
    payment_metadata: Optional[Dict[str, Any]] = None


class FinancialTicketUpdate(BaseModel):
    """Partial update; `invoice_file=None` / `receipt_file=None` clear the blob."""

    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    amount: Optional[Decimal] = Field(default=None, gt=0)
    due_date: Optional[date] = None
    payment_date: Optional[datetime] = None
    status: Optional[str] = None
    client_id: Optional[uuid.UUID] = None
    invoice_file: Optional[FileBlob] = None
    receipt_file: Optional[FileBlob] = None
    notes: Optional[str] = None
    erp_id: Optional[str] = None
    erp_type: Optional[str] = None
    invoice_number: Optional[str] = None
    barcode: Optional[str] = None
    our_number: Optional[str] = None
    payment_erp_id: Optional[str] = None
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None
    erp_metadata: Optional[Dict[str, Any]] = None
    payment_metadata: Optional[Dict[str, Any]] = None


class FinancialTicketView(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    amount: Decimal
    due_date: date
    payment_date: Optional[datetime] = None
    status: str
    client: Optional[UserRef] = None
    created_by: Optional[UserRef] = None
    invoice_file: Optional[FileBlobView] = None
    receipt_file: Optional[FileBlobView] = None
    notes: Optional[str] = None
    erp_id: Optional[str] = None
    erp_type: Optional[str] = None
    invoice_number: Optional[str] = None
    barcode: Optional[str] = None
    our_number: Optional[str] = None
    payment_erp_id: Optional[str] = None
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None
    erp_metadata: Optional[Dict[str, Any]] = None
    payment_metadata: Optional[Dict[str, Any]] = None
    created_at: datetime
    updated_at: datetime


# --- ERP webhook payloads (camelCase on the wire) ---


class _ERPModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ERPTicketData(_ERPModel):
    """Invoice (boleto) created or corrected in the ERP."""

    erp_id: str = Field(min_length=1)
    erp_type: ERPType
    title: str = Field(min_length=1)
    description: Optional[str] = None
    amount: Decimal = Field(gt=0)
    due_date: date
    client_email: EmailStr
    client_name: str = Field(min_length=1)
    client_document: Optional[str] = None
    invoice_number: Optional[str] = None
    barcode: Optional[str] = None
    our_number: Optional[str] = None
    invoice_file_url: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @field_validator("due_date", mode="before")
    @classmethod
    def _date_from_iso_datetime(cls, value: Any) -> Any:
        # ERPs send dueDate as a full ISO timestamp ("2030-11-18T14:23:11.123Z")
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, str) and "T" in value:
            try:
                return _DATETIME.validate_python(value).date()
            except ValueError:
                return value
        return value


class ERPPaymentData(_ERPModel):
    """Payment confirmed in the ERP for a previously pushed invoice."""

    erp_id: str = Field(min_length=1)
    erp_ticket_id: str = Field(min_length=1)
    erp_type: ERPType
    payment_date: datetime
    amount: Decimal = Field(gt=0)
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None
    receipt_file_url: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class ReconcileResult(_ERPModel):
    success: bool
    ticket_id: Optional[str] = None
    message: str
    error: Optional[str] = None
