# adahi/main.py
from contextlib import asynccontextmanager
import logging

from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from adahi.core.config import get_settings
from adahi.core.guards import GuardInterrupt
from adahi.database import create_db_and_tables, engine
from adahi.gateways.store import DocumentStore
from adahi.services.session_manager import SessionManager

# Routers
from adahi.routers.pages import router as pages_router
from adahi.routers.auth import router as auth_router
from adahi.routers.dashboard import router as dashboard_router
from adahi.routers.admin import router as admin_router
from adahi.routers.slaughter import router as slaughter_router
from adahi.routers.realtime import router as realtime_router

settings = get_settings()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("uvicorn")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Verify DB connectivity and create tables.
      - Build the shared document store and the session registry.

    Shutdown:
      - Tear down every open session (auth listeners, realtime queries).
    """
    logger.info("🔄 Startup: Connecting to the database...")
    try:
        create_db_and_tables()
        logger.info("✅ Startup: DB connection OK, tables verified.")
    except Exception as e:
        logger.error(f"❌ Startup: DB connection FAILED: {e}")
        raise

    app.state.session_manager = SessionManager(DocumentStore(engine))
    yield

    logger.info("Shutdown: closing %d session(s)", len(app.state.session_manager))
    app.state.session_manager.close_all()


app = FastAPI(
    title=settings.PROJECT_NAME or "Adahi Tracker API",
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(GuardInterrupt)
async def guard_interrupt_handler(request: Request, exc: GuardInterrupt):
    """Loading placeholder (202) or a redirect (303) for guarded areas."""
    notifications = jsonable_encoder(exc.notifications)
    decision = exc.decision
    if decision.action == "placeholder":
        return JSONResponse(
            status_code=status.HTTP_202_ACCEPTED,
            content={"loading": True, "notifications": notifications},
        )
    return JSONResponse(
        status_code=status.HTTP_303_SEE_OTHER,
        content={"redirect": decision.location, "notifications": notifications},
        headers={"Location": decision.location},
    )


app.include_router(pages_router)
app.include_router(auth_router)
app.include_router(dashboard_router)
app.include_router(admin_router)
app.include_router(slaughter_router)
app.include_router(realtime_router)
