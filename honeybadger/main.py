"""
Main FastAPI application.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from honeybadger.api.v1 import api_router
from honeybadger.core.agents.companion.responder import CompanionResponder
from honeybadger.core.config import settings
from honeybadger.core.errors import DomainError
from honeybadger.db.base import SessionLocal, engine
from honeybadger.models import Base
from honeybadger.services.chat_orchestrator import ChatOrchestrator
from honeybadger.services.notification_service import NotificationService
from honeybadger.services.payment_service import PaymentService
from honeybadger.services.reply_scheduler import ReplyScheduler
from honeybadger.services.rooms import RoomManager
from honeybadger.services.session_registry import SessionRegistry

# Configure logging BEFORE creating the app
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(levelname)s:\t%(name)s\t%(message)s',
    handlers=[
        logging.StreamHandler()  # Output to console
    ]
)
logging.getLogger("uvicorn").setLevel(logging.INFO)

logger = logging.getLogger(__name__)

# Create database tables
Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Build the live-chat collaborators once per process and tear them down on exit.
    """
    logger.info(f"🚀 Starting {settings.PROJECT_NAME}")

    sessions = SessionRegistry()
    scheduler = ReplyScheduler()
    app.state.sessions = sessions
    app.state.rooms = RoomManager()
    app.state.scheduler = scheduler
    app.state.payments = PaymentService()
    app.state.orchestrator = ChatOrchestrator(
        session_factory=SessionLocal,
        rooms=app.state.rooms,
        sessions=sessions,
        responder=CompanionResponder(),
        scheduler=scheduler,
        notifier=NotificationService(sessions),
    )

    yield

    await scheduler.shutdown()
    logger.info(f"👋 Shutting down {settings.PROJECT_NAME}")


# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Honey badger challenges: send challenges, chat live, and get pushed by an AI companion",
    version="0.1.0",
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Configure CORS - Always apply middleware
if isinstance(settings.BACKEND_CORS_ORIGINS, list) and settings.BACKEND_CORS_ORIGINS:
    cors_origins = [str(origin).rstrip("/") for origin in settings.BACKEND_CORS_ORIGINS]
else:
    cors_origins = ["*"]
logger.info(f"🔧 CORS enabled for origins: {cors_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Global exception handlers
@app.exception_handler(DomainError)
async def domain_exception_handler(request: Request, exc: DomainError):
    """
    Map domain errors to their HTTP status.

    Args:
        request: Request object
        exc: Domain error raised by a service

    Returns:
        JSON response with the error message and a machine-readable code
    """
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handle validation errors.

    Args:
        request: Request object
        exc: Validation exception

    Returns:
        JSON response with error details
    """
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=jsonable_encoder({"detail": exc.errors(), "body": exc.body}),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Handle all unhandled exceptions.
    """
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# Health check endpoint
@app.get("/", tags=["Health"])
async def root():
    """
    Root endpoint - Health check.

    Returns:
        Status message
    """
    return {
        "message": "Honey Badger Challenges API",
        "status": "healthy",
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        Health status
    """
    return {"status": "healthy", "environment": settings.ENV}


# Include API routers
app.include_router(api_router, prefix=settings.API_V1_PREFIX)
