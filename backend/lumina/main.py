"""
Lumina API v1.0

FastAPI application for the Lumina AI interior designer.

Features:
- Room analysis with explicit original materials
- Style presets, suggested and custom redesigns
- Conversational refinement with strict change isolation
- Text-to-image interior concepts
- LangSmith tracing for observability
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from lumina.config import get_settings, setup_langsmith
from lumina.core.exceptions import (
    AlreadyInitializedError,
    CollaboratorError,
    InvalidImageError,
    InvalidPromptError,
    InvalidTransitionError,
    LuminaError,
    QuotaExceededError,
    SessionBusyError,
    SessionNotFoundError,
    UnderSpecifiedInstructionError,
)
from lumina.core.sessions import SessionRegistry
from lumina.models.schemas import HealthResponse
from lumina.routes import sessions, styles


# Get settings
settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# Setup LangSmith tracing
langsmith_enabled = setup_langsmith()


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.sessions = SessionRegistry(settings)
    logger.info("%s v%s started", settings.app_name, settings.app_version)
    yield
    logger.info("Shutting down with %d active session(s)", len(app.state.sessions))


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    **Lumina API** - AI interior designer.

    ## Workflow
    1. Create a session → `POST /api/v1/sessions`
    2. Upload a room photo → `POST /api/v1/sessions/{id}/upload`
    3. Pick a style, suggestion or custom prompt → `POST /api/v1/sessions/{id}/redesign`
    4. Refine it with Lumina → `POST /api/v1/sessions/{id}/chat`

    Or generate a concept from text → `POST /api/v1/sessions/{id}/generate`

    ## AI Models Used
    - `gemini-2.5-flash`: Room analysis and designer chat
    - `gemini-2.5-flash-image`: Redesign and chat edits
    - `imagen-4.0-generate-001`: Text-to-image concepts
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(sessions.router, prefix=settings.api_prefix)
app.include_router(styles.router, prefix=settings.api_prefix)


# ============ Exception Handlers ============

def _error(status_code: int, exc: LuminaError, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "error_code": exc.error_code},
        headers=headers,
    )


@app.exception_handler(InvalidImageError)
@app.exception_handler(InvalidPromptError)
@app.exception_handler(UnderSpecifiedInstructionError)
async def invalid_input_error_handler(request: Request, exc: LuminaError):
    """Handle rejected input."""
    return _error(400, exc)


@app.exception_handler(SessionNotFoundError)
async def session_not_found_error_handler(request: Request, exc: SessionNotFoundError):
    return _error(404, exc)


@app.exception_handler(SessionBusyError)
@app.exception_handler(InvalidTransitionError)
@app.exception_handler(AlreadyInitializedError)
async def conflict_error_handler(request: Request, exc: LuminaError):
    """Handle overlapping requests and out-of-order actions."""
    return _error(409, exc)


@app.exception_handler(QuotaExceededError)
async def quota_exceeded_error_handler(request: Request, exc: QuotaExceededError):
    headers = None
    if exc.retry_after is not None:
        headers = {"Retry-After": str(int(exc.retry_after))}
    return _error(429, exc, headers)


@app.exception_handler(CollaboratorError)
async def collaborator_error_handler(request: Request, exc: CollaboratorError):
    """Handle generative backend failures."""
    return _error(502, exc)


@app.exception_handler(LuminaError)
async def lumina_error_handler(request: Request, exc: LuminaError):
    """Handle generic Lumina errors."""
    logger.error("Unhandled Lumina error: %s", exc.message)
    return _error(500, exc)


# ============ Health Check ============

@app.get("/", response_model=HealthResponse, tags=["Health"])
async def root():
    """Root endpoint - health check."""
    return HealthResponse(
        status="ok",
        version=settings.app_version,
        message="Lumina API is running. Visit /docs for API documentation."
    )


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="ok",
        version=settings.app_version
    )


# ============ Run with Uvicorn ============

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "lumina.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug
    )
