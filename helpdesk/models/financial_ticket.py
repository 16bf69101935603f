# helpdesk/models/financial_ticket.py
"""
Financial ticket model (invoice / payment record), optionally sourced from an ERP.
"""

import uuid as uuid_pkg
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, SQLModel

from ..utils.timeutils import utcnow


class FinancialTicket(SQLModel, table=True):
    """
    Fields:
    - id: prefixed sequence ("FT-00007")
    - amount: positive decimal
    - status: pending, paid, overdue, cancelled
    - erp_id + erp_type: external identity, unique among ERP-sourced tickets
    - invoice_* / receipt_*: optional file blobs
    - payment_*: supplementary data recorded on payment confirmation
    """

    __tablename__ = "financial_tickets"
    __table_args__ = (
        UniqueConstraint("erp_id", "erp_type", name="uq_financial_tickets_erp_identity"),
    )

    id: str = Field(primary_key=True, max_length=32)
    title: str = Field(nullable=False)
    description: Optional[str] = Field(default=None)
    amount: Decimal = Field(max_digits=12, decimal_places=2)
    due_date: date
    payment_date: Optional[datetime] = Field(default=None)
    status: str = Field(default="pending", index=True)

    client_id: Optional[uuid_pkg.UUID] = Field(default=None, index=True)
    created_by: Optional[uuid_pkg.UUID] = Field(default=None)

    invoice_file_name: Optional[str] = Field(default=None)
    invoice_file_size: Optional[int] = Field(default=None)
    invoice_file_type: Optional[str] = Field(default=None)
    invoice_file_data: Optional[str] = Field(default=None)
    receipt_file_name: Optional[str] = Field(default=None)
    receipt_file_size: Optional[int] = Field(default=None)
    receipt_file_type: Optional[str] = Field(default=None)
    receipt_file_data: Optional[str] = Field(default=None)

    notes: Optional[str] = Field(default=None)

    # External identity
    erp_id: Optional[str] = Field(default=None, index=True)
    erp_type: Optional[str] = Field(default=None)
    invoice_number: Optional[str] = Field(default=None)
    barcode: Optional[str] = Field(default=None)
    our_number: Optional[str] = Field(default=None)
    erp_metadata: Optional[dict[str, Any]] = Field(default=None, sa_column=Column(JSON))

    # Payment confirmation
    payment_erp_id: Optional[str] = Field(default=None)
    payment_method: Optional[str] = Field(default=None)
    transaction_id: Optional[str] = Field(default=None)
    payment_metadata: Optional[dict[str, Any]] = Field(default=None, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
