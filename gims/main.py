"""
GIMS FastAPI Main Application
Entry point for the ground-support inventory REST API
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from gims.core.config import settings
from gims.core.database import check_db_connection, init_db
from gims.core.exceptions import GIMSException
from gims.core.logging import setup_logging, get_logger
from gims.api.v1.api_router import api_router

setup_logging()
logger = get_logger("app")

# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="""
    ## GIMS Inventory API

    Inventory management for ground-support equipment spares.

    ### Key Features:
    - **Requests**: Multi-line purchase requests with approval and force-close
    - **Receiving**: Purchase, tender and borrow receives with unit conversion
    - **RRP**: Receive reconciliation documents with cost distribution
    - **Stock**: Stock master, issues and current-stock exports
    - **Assets**: Configurable asset types and assets
    - **Prediction**: Lead-time statistics per NAC code
    """,
    docs_url=settings.DOCS_URL,
    redoc_url=settings.REDOC_URL,
    openapi_url=settings.OPENAPI_URL,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _validation_message(errors) -> str:
    messages = []
    for error in errors:
        message = str(error.get("msg", "Invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        messages.append(message)
    return "; ".join(messages) or "Invalid request"


@app.exception_handler(GIMSException)
async def gims_exception_handler(request: Request, exc: GIMSException):
    """Render application errors as ``{error, message}``"""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    content = {"error": exc.error, "message": exc.message}
    details = getattr(exc, "details", None)
    if details:
        content["details"] = details
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    details = [
        {"field": ".".join(str(part) for part in error.get("loc", ())[1:]), "message": error.get("msg")}
        for error in errors
    ]
    return JSONResponse(
        status_code=400,
        content={"error": "Bad Request", "message": _validation_message(errors), "details": details},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": "Error", "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler for unhandled errors

    The exception text is only exposed when DEBUG is set.
    """
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=True)
    content = {"error": "Internal Server Error", "message": "An unexpected error occurred"}
    if settings.DEBUG:
        content["detail"] = str(exc)
    return JSONResponse(status_code=500, content=content)


# Health check endpoint
@app.get("/health", tags=["System"])
async def health_check():
    """
    Health check endpoint for monitoring and load balancers
    """
    db_status = check_db_connection()
    return {
        "status": "healthy" if db_status else "degraded",
        "version": settings.APP_VERSION,
        "database": "connected" if db_status else "disconnected",
    }


@app.get("/info", tags=["System"])
async def system_info():
    return {
        "application": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "api_prefix": settings.API_PREFIX,
        "docs_url": settings.DOCS_URL,
    }


@app.on_event("startup")
async def startup_event():
    """
    Create missing tables on startup
    """
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    if check_db_connection():
        init_db()
        logger.info("Application startup completed successfully")
    else:
        logger.error("Failed to connect to database on startup")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down application")


app.include_router(api_router, prefix=settings.API_PREFIX)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "gims.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
