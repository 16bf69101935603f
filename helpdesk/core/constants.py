"""
Centralized constants for the helpdesk.
Removes "magic strings" and provides strong typing for common values.
"""

from enum import Enum, unique


@unique
class UserRole(str, Enum):
    """Account roles."""

    ADMIN = "admin"
    TECHNICIAN = "technician"
    TECHNICIAN_N2 = "technician_n2"
    USER = "user"
    FINANCIAL = "financial"


@unique
class TicketStatus(str, Enum):
    """Support ticket lifecycle states."""

    ABERTO = "aberto"
    EM_ANDAMENTO = "em_andamento"
    EM_ATENDIMENTO = "em_atendimento"
    PENDENTE = "pendente"
    AGUARDANDO_CLIENTE = "aguardando_cliente"
    EM_FASE_DE_TESTES = "em_fase_de_testes"
    HOMOLOGACAO = "homologacao"
    RESOLVIDO = "resolvido"
    FECHADO = "fechado"
    ENCERRADO = "encerrado"


@unique
class TicketPriority(str, Enum):
    BAIXA = "baixa"
    MEDIA = "media"
    ALTA = "alta"
    CRITICA = "critica"


@unique
class TicketCategory(str, Enum):
    TECNICO = "tecnico"
    SUPORTE = "suporte"
    FINANCEIRO = "financeiro"
    OUTROS = "outros"


@unique
class FinancialStatus(str, Enum):
    """Financial ticket (invoice) states."""

    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


@unique
class ERPType(str, Enum):
    """External accounting systems that push webhooks."""

    CONTAAZUL = "contaazul"
    BLING = "bling"
    TINY = "tiny"
    OMIE = "omie"
    OTHER = "other"


# --- Identifier formats ---
TICKET_ID_WIDTH = 5
FINANCIAL_TICKET_PREFIX = "FT-"
ID_ALLOCATION_MAX_ATTEMPTS = 5

# --- Queues ---
DEFAULT_QUEUE_NAME = "Suporte N1"
N2_QUEUE_NAME = "Suporte N2"
N2_QUEUE_MARKER = "N2"

# --- Placeholders for dangling user references ---
MISSING_USER_NAME = "Usuário não encontrado"
MISSING_CLIENT_NAME = "Cliente não encontrado"
