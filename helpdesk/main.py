# helpdesk/main.py
from dotenv import load_dotenv

# Load .env before anything reads the settings
load_dotenv()

import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api.financial import main as financial_main_api
from .api.settings import main as settings_main_api
from .api.tickets import main as tickets_main_api
from .api.users import main as users_main_api
from .api.webhooks import main as webhooks_main_api
from .core.config import settings
from .core.exceptions import (
    AccessDeniedError,
    AllocationError,
    ConflictError,
    HelpdeskError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from .core.limiter import limiter
from .core.users import auth_backend_jwt, fastapi_users
from .db.engine import create_db_and_tables

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(levelname)s - [Helpdesk] - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Helpdesk", version="1.0.0")


# --- Database Initialization ---
@app.on_event("startup")
async def on_startup():
    await create_db_and_tables()
    logger.info("Database tables initialized")


# --- Rate limiting (SlowAPI) ---
app.state.limiter = limiter


async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"detail": f"Rate limit exceeded: {exc.detail}"},
    )


app.add_exception_handler(RateLimitExceeded, rate_limit_handler)


# ============================================================================
# --- SECURITY: CORS / TRUSTED HOSTS / HEADERS ---
# ============================================================================
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.allowed_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=[h.strip() for h in settings.allowed_hosts.split(",") if h.strip()],
)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    if settings.is_production:
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return response


# ============================================================================
# --- EXCEPTION HANDLERS ---
# ============================================================================
ERROR_STATUS = {
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
    AccessDeniedError: status.HTTP_403_FORBIDDEN,
    AllocationError: status.HTTP_503_SERVICE_UNAVAILABLE,
    StorageError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


@app.exception_handler(HelpdeskError)
async def helpdesk_exception_handler(request: Request, exc: HelpdeskError):
    status_code = ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    if isinstance(exc, ValidationError):
        return JSONResponse(
            status_code=status_code,
            content={"detail": exc.message, "errors": exc.errors},
        )
    if isinstance(exc, (AllocationError, StorageError)):
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(
            status_code=status_code,
            content={"detail": "Não foi possível concluir a operação. Tente novamente."},
        )
    return JSONResponse(status_code=status_code, content={"detail": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code, content={"detail": exc.detail}, headers=exc.headers
    )


# ============================================================================
# --- ROUTERS INCLUSION ---
# ============================================================================
app.include_router(
    fastapi_users.get_auth_router(auth_backend_jwt),
    prefix="/api/auth/jwt",
    tags=["Auth"],
)

app.include_router(tickets_main_api.router, prefix="/api", tags=["Tickets"])
app.include_router(financial_main_api.router, prefix="/api", tags=["Financial Tickets"])
app.include_router(webhooks_main_api.router, prefix="/api", tags=["Webhooks"])
app.include_router(settings_main_api.router, prefix="/api", tags=["Settings"])
app.include_router(users_main_api.router, prefix="/api", tags=["Users"])


@app.get("/api/health", tags=["Health"])
async def health():
    return {"status": "ok"}
