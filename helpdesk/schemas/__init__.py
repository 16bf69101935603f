from .financial import (
    ERPPaymentData,
    ERPTicketData,
    FinancialTicketCreate,
    FinancialTicketUpdate,
    FinancialTicketView,
    ReconcileResult,
)
from .ticket import TicketCreate, TicketFilters, TicketUpdate, TicketView
from .user import DanglingUser, ResolvedUser, UserCreate, UserRead, UserRef
