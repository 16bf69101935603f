from .financial_ticket import FinancialTicket
from .setting import Setting
from .ticket import Comment, Queue, Ticket, TicketFile
from .user import User
