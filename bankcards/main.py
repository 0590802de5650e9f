"""
The FastAPI app: lifespan hooks, CORS, the domain error handler, and the
/auth, /transfers, /cards and /admin routers.

Running locally:
    uvicorn bankcards.main:app --reload
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import bankcards.models  # noqa: F401  (registers every table on Base.metadata)
from bankcards.config import settings
from bankcards.database import engine, Base
from bankcards.exceptions import register_exception_handlers
from bankcards.logging_config import configure_logging, get_logger
from bankcards.routers import admin, auth, cards, transfers

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
      Configures structured logging, then creates all database tables if
      they don't exist.

    Shutdown:
      Closes pooled connections by disposing of the engine.
    """
    # --- Startup ---
    configure_logging(settings.LOG_LEVEL, format_as_json=settings.LOG_JSON)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("application_started", version=settings.APP_VERSION)
    yield
    # --- Shutdown ---
    await engine.dispose()
    logger.info("application_stopped")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Bank card REST API with encrypted card numbers, transfers, and token auth",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

register_exception_handlers(app)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
app.include_router(transfers.router, prefix="/transfers", tags=["Transfers"])
app.include_router(cards.router, prefix="/cards", tags=["Cards"])
app.include_router(admin.router, prefix="/admin", tags=["Admin"])


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/health", tags=["Health"])
async def health_check():
    """Liveness probe for load balancers and orchestrators."""
    return {"status": "ok", "version": settings.APP_VERSION}
