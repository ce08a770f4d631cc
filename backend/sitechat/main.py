"""
Site Chat API - Main Application
FastAPI backend for the personal-site chat assistant.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .errors import TransportError
from .integrations.content import load_content
from .routers import chat, widgets

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    configure_logging(settings.log_level)
    print("=" * 60)
    print(f"🚀 {settings.app_name} v{settings.app_version}")
    if settings.git_commit:
        print(f"📦 Git Commit: {settings.git_commit[:8]}")
    if settings.build_date:
        print(f"🕐 Build Date: {settings.build_date}")
    print("=" * 60)

    # Warm the static content cache so the first chat turn doesn't pay for it
    load_content(settings.content_dir)
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY not configured; chat turns will fail until it is set")

    yield


# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Chat assistant for a personal website, grounded in live and static personal data",
    lifespan=lifespan,
    docs_url="/docs",  # Swagger UI
    redoc_url="/redoc",  # ReDoc
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TransportError)
async def transport_error_handler(request: Request, exc: TransportError):
    return JSONResponse(status_code=400, content={"error": "Bad request", "message": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    problems = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}" for err in exc.errors()
    )
    return JSONResponse(status_code=400, content={"error": "Bad request", "message": problems or "Malformed request."})


# Include routers
app.include_router(chat.router)
app.include_router(widgets.router)


@app.get("/")
def root():
    """Root endpoint - API status."""
    response = {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "status": "healthy",
        "docs": "/docs"
    }
    if settings.git_commit:
        response["git_commit"] = settings.git_commit[:8]
    if settings.build_date:
        response["build_date"] = settings.build_date
    return response


@app.get("/health")
def health_check():
    """Health check endpoint for monitoring."""
    return {"status": "healthy"}


@app.get("/api/version")
def version():
    """Version information endpoint."""
    response = {
        "app_name": settings.app_name,
        "version": settings.app_version,
        "model": settings.model_name,
    }
    if settings.git_commit:
        response["git_commit"] = settings.git_commit
        response["git_commit_short"] = settings.git_commit[:8]
    if settings.build_date:
        response["build_date"] = settings.build_date
    return response


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("sitechat.main:app", host="0.0.0.0", port=8000, reload=True)
