# helpdesk/api/financial/models.py
from typing import List

from pydantic import BaseModel

from ...schemas.financial import FinancialTicketView


class FinancialTicketListResponse(BaseModel):
    items: List[FinancialTicketView]
    total: int
