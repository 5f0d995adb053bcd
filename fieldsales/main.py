import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import ALLOWED_ORIGINS, LOG_LEVEL
from .domain.clients.router import router as clients_router
from .domain.tasks.router import router as tasks_router
from .domain.visits.router import router as visits_router
from .errors import InvalidTransitionError, NotFoundError, ValidationError
from .routes import notifications_router
from .session import FieldSession

# Configure logging
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


def create_app(session: Optional[FieldSession] = None) -> FastAPI:
    """Build the API; a prepared session (tests) replaces the configured one"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Application starting up...")
        app.state.session = session or FieldSession.from_config()
        await app.state.session.start()
        yield
        logger.info("Application shutting down...")
        await app.state.session.stop()

    app = FastAPI(title="Field Sales API", version="1.0.0", lifespan=lifespan)

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        logger.warning(f"Validation error for {request.url.path}: {exc.message}")
        return JSONResponse(status_code=422, content={"detail": exc.message})

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"detail": exc.message})

    @app.exception_handler(InvalidTransitionError)
    async def invalid_transition_handler(request: Request, exc: InvalidTransitionError):
        logger.warning(f"Invalid transition for {request.url.path}: {exc.message}")
        return JSONResponse(status_code=409, content={"detail": exc.message})

    logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
        allow_headers=["*"],
    )

    app.include_router(clients_router)
    app.include_router(visits_router)
    app.include_router(tasks_router)
    app.include_router(notifications_router)

    @app.get("/")
    def root():
        return {"message": "Field Sales API is running"}

    @app.get("/health")
    def health(request: Request):
        session: FieldSession = request.app.state.session
        return {
            "status": "healthy",
            "monitor_running": session.monitor.running,
            "alerted_visits": len(session.monitor.record),
            "sync_enabled": session.sync.enabled,
        }

    return app


app = create_app()
