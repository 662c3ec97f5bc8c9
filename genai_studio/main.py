import os
import subprocess
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

import inngest.fast_api
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from genai_studio.config.logger import app_logger, log_request_start, log_request_end, log_request_error
from genai_studio.config.settings import settings
from genai_studio.db.db import close_db, init_db, ping_database
from genai_studio.services.chat import wait_for_pending_turns
from genai_studio.services.vector_store import describe_index_stats, ensure_index
from genai_studio.utils.responses import error_response
from genai_studio.api.chat.router import router as chat_router
from genai_studio.api.documents.router import router as documents_router
from genai_studio.api.workflows.router import router as workflows_router
from genai_studio.workflows.client import inngest_client
from genai_studio.workflows.functions import (
    api_fetcher,
    approval_workflow,
    daily_report,
    data_processor,
    email_sender,
    reminder,
    simple_greeter,
)
from genai_studio.workflows.news import news_analysis


_git_sha_cache: Optional[str] = None


def get_git_sha() -> str:
    """Get the current Git commit SHA (cached to avoid blocking)."""
    global _git_sha_cache
    if _git_sha_cache is not None:
        return _git_sha_cache

    try:
        result = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            capture_output=True,
            text=True,
            check=True,
            timeout=1.0
        )
        _git_sha_cache = result.stdout.strip()[:8]
        return _git_sha_cache
    except (subprocess.CalledProcessError, FileNotFoundError, subprocess.TimeoutExpired):
        _git_sha_cache = "local-dev"
        return _git_sha_cache


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager for startup and shutdown events."""
    # Startup
    app_logger.info(f"{settings.APP_NAME} API starting up")
    app_logger.info(f"Logging system active - logs will be saved to {settings.LOGS_DIR}/")

    await init_db()

    if settings.PINECONE_API_KEY:
        if ensure_index():
            app_logger.info(f"Pinecone index '{settings.PINECONE_INDEX_NAME}' ready")
        else:
            app_logger.warning("Pinecone index unavailable - uploads and retrieval will fail")
    else:
        app_logger.warning("PINECONE_API_KEY not set; document indexing is disabled")

    app_logger.info("Application initialized successfully")

    yield

    # Shutdown
    app_logger.info(f"{settings.APP_NAME} API shutting down")
    await wait_for_pending_turns()
    await close_db()
    app_logger.info("Application shutdown complete")


app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    servers=[
        {
            "url": "http://localhost:8000",
            "description": "Development server",
        },
    ],
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests with timing information using Loguru."""
    start_time = datetime.now()

    # Log request start
    log_request_start(request)

    # Process request
    try:
        response = await call_next(request)

        # Calculate processing time
        process_time = (datetime.now() - start_time).total_seconds()

        # Log response
        log_request_end(request, response.status_code, process_time)

        return response

    except Exception as e:
        # Log error
        process_time = (datetime.now() - start_time).total_seconds()
        log_request_error(request, e, process_time)
        raise


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Surface unexpected failures as a generic 500; the cause is only logged."""
    app_logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content=error_response("Internal server error").model_dump(mode="json"),
    )


@app.get("/", tags=["health"])
async def root():
    """Root endpoint with basic API information."""
    app_logger.info("Root endpoint accessed")
    return {
        "message": f"Welcome to {settings.APP_NAME} API",
        "version": settings.APP_VERSION,
        "status": "operational",
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/status", tags=["health"])
async def status():
    """Status endpoint with build information for CI/CD monitoring."""
    app_logger.info("Status endpoint accessed")

    # Get build information from environment variables (CI-injected)
    build_number = os.getenv("BUILD_NUMBER", "local-dev")
    git_sha = os.getenv("GIT_SHA", os.getenv("GITHUB_SHA", get_git_sha()))
    environment = os.getenv("ENVIRONMENT", os.getenv("ENV", "development"))

    return {
        "status": "ok",
        "build": build_number,
        "sha": git_sha,
        "env": environment
    }


@app.get("/health/db", tags=["health"])
async def health_db():
    """Database health endpoint: runs a trivial query."""
    is_ok, message = await ping_database()
    if not is_ok:
        return JSONResponse(
            status_code=503,
            content={"status": "degraded", "db": "unavailable", "message": message}
        )
    return {"status": "ok", "db": "available", "message": message}


@app.get("/health/index", tags=["health"])
async def health_index():
    """Vector index health endpoint: reports Pinecone index stats."""
    stats = describe_index_stats()
    if stats is None:
        return JSONResponse(
            status_code=503,
            content={"status": "degraded", "index": "unavailable"}
        )
    return {
        "status": "ok",
        "index": settings.PINECONE_INDEX_NAME,
        "totalVectorCount": stats.get("total_vector_count", 0),
        "dimension": stats.get("dimension"),
    }


# Include API routers
app.include_router(documents_router)
app.include_router(chat_router)
app.include_router(workflows_router)

# Durable workflow handler at /api/inngest
inngest.fast_api.serve(
    app,
    inngest_client,
    [
        simple_greeter,
        data_processor,
        api_fetcher,
        approval_workflow,
        reminder,
        email_sender,
        daily_report,
        news_analysis,
    ],
)


if __name__ == "__main__":
    import uvicorn

    # Log startup
    app_logger.info(f"Starting {settings.APP_NAME} API server")

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        log_config=None  # Use our custom logger
    )
