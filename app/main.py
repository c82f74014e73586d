from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import os
import logging
from dotenv import load_dotenv

from .api.storage import router as storage_router
from .models.responses import ErrorResponse, HealthResponse
from .storage.adapters.base import ErrorCode, StorageError
from .storage.factory import create_default_storage_service, StorageConfigurationError

# Load environment variables
load_dotenv()

# Set up logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

# Create FastAPI application
app = FastAPI(
    title="File Storage Service",
    description="Provider-agnostic bucket and object storage with capability negotiation",
    version="1.0.0"
)

# Initialize storage service on startup
@app.on_event("startup")
async def startup_event():
    """Initialize storage service and attach to application state."""
    try:
        storage_service = create_default_storage_service()
        app.state.storage_service = storage_service
        logger.info(f"Storage service initialized with provider {storage_service.provider}")
    except StorageConfigurationError as e:
        logger.error(f"Failed to initialize storage service: {e}")
        raise RuntimeError(f"Storage initialization failed: {e}") from e


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    """Serialize storage errors as {code, message, status}."""
    return JSONResponse(
        status_code=exc.status,
        content=ErrorResponse(**exc.to_dict()).model_dump()
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    """Report anything else as an internal error."""
    logger.error(f"Unexpected error handling {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            code=ErrorCode.INTERNAL_ERROR.value,
            message=str(exc) or "An unexpected error occurred",
            status=500
        ).model_dump()
    )


# Include API routers
app.include_router(storage_router)

@app.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """Health check endpoint for monitoring and deployment validation"""
    return HealthResponse(
        status="ok",
        provider=request.app.state.storage_service.provider,
        timestamp=datetime.now(timezone.utc)
    )

if __name__ == "__main__":
    import uvicorn
    host = os.getenv("HOST", "127.0.0.1")
    port = int(os.getenv("PORT", "8000"))
    debug = os.getenv("DEBUG", "False").lower() == "true"

    uvicorn.run("app.main:app", host=host, port=port, reload=debug)
