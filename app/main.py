"""
app/main.py

Purpose: Application entry point

- Initializes FastAPI app
- Loads configuration and logging
- Registers API routes (chat, context, insights, documents, business plans)
- No business logic should be written here
- Manages application lifecycle (startup/shutdown)
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import time

from app.core.config import settings, validate_settings
from app.core.errors import add_exception_handlers
from app.core.logging import setup_logging, get_logger
from app.db.airtable import connect_to_store, close_store_connection, check_store_health
from app.services.llm_service import close_llm_service
from app.api import business_plan, chat, context, documents, insights

# Initialize logging first
setup_logging()
logger = get_logger(__name__)

APP_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    logger.info("🚀 Starting Sol coaching backend...")

    try:
        logger.info("Validating configuration...")
        validate_settings()
        logger.info("✅ Configuration validated")

        await connect_to_store()

        is_healthy = await check_store_health()
        if not is_healthy:
            logger.warning("⚠️ Airtable health check failed during startup")
        else:
            logger.info("✅ Airtable health check passed")

        logger.info("🎉 Sol coaching backend started")
        logger.info(f"Environment: {settings.ENVIRONMENT}")
        logger.info(f"Debug Mode: {settings.DEBUG}")

    except Exception as e:
        logger.critical(f"Failed to start application: {str(e)}", exc_info=True)
        raise

    yield

    logger.info("🛑 Shutting down Sol coaching backend...")

    try:
        await close_llm_service()
        logger.info("✅ OpenAI client closed")

        await close_store_connection()

        logger.info("👋 Sol coaching backend shut down")

    except Exception as e:
        logger.error(f"Error during shutdown: {str(e)}", exc_info=True)


app = FastAPI(
    title="Sol - Aligned Business Coaching API",
    description="Context-aware coaching chat, Personalgorithm™ insights and document processing",
    version=APP_VERSION,
    lifespan=lifespan,
    debug=settings.DEBUG,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

add_exception_handlers(app)


@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add processing time header to all responses."""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)

    # Log slow requests
    if process_time > 5.0:  # More than 5 seconds
        logger.warning(
            f"Slow request detected: {request.method} {request.url.path}",
            extra={"process_time": process_time}
        )

    return response


app.include_router(chat.router, prefix=settings.API_PREFIX, tags=["Chat"])
app.include_router(context.router, prefix=settings.API_PREFIX, tags=["Context"])
app.include_router(insights.router, prefix=settings.API_PREFIX, tags=["Personalgorithm"])
app.include_router(documents.router, prefix=settings.API_PREFIX, tags=["Documents"])
app.include_router(business_plan.router, prefix=settings.API_PREFIX, tags=["Business Plans"])


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - basic info."""
    return {
        "name": "Sol API",
        "version": APP_VERSION,
        "description": "Aligned Business coaching backend",
        "status": "running",
        "environment": settings.ENVIRONMENT
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Checks Airtable connectivity and reports configuration of the model provider.
    """
    health_status = {
        "status": "healthy",
        "timestamp": time.time(),
        "environment": settings.ENVIRONMENT,
        "version": APP_VERSION,
        "checks": {}
    }

    try:
        store_healthy = await check_store_health()
        health_status["checks"]["airtable"] = "healthy" if store_healthy else "unhealthy"

        if not store_healthy:
            health_status["status"] = "degraded"
    except Exception as e:
        logger.error(f"Airtable health check failed: {str(e)}")
        health_status["checks"]["airtable"] = "unhealthy"
        health_status["status"] = "unhealthy"

    # Configuration only, no completion call
    health_status["checks"]["openai"] = "configured" if settings.OPENAI_API_KEY else "not_configured"

    status_code = 200 if health_status["status"] == "healthy" else 503
    return JSONResponse(content=health_status, status_code=status_code)


@app.get("/ready", tags=["Health"])
async def readiness_check():
    """
    Readiness probe - indicates if app is ready to receive traffic.
    """
    try:
        store_healthy = await check_store_health()
        if store_healthy:
            return {"status": "ready"}
        else:
            return JSONResponse(
                status_code=503,
                content={"status": "not_ready", "reason": "airtable_unavailable"}
            )
    except Exception as e:
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "reason": str(e)}
        )


@app.get("/live", tags=["Health"])
async def liveness_check():
    """
    Liveness probe - indicates if app is alive.
    """
    return {"status": "alive"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_level=settings.LOG_LEVEL.lower()
    )
