"""FastAPI application entry point."""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cortex_review import __version__
from cortex_review.api.deps import dispose_storage, get_session_store
from cortex_review.api.v1.api import api_router
from cortex_review.core.api import ApiResponse
from cortex_review.core.config import Settings, get_settings
from cortex_review.core.errors import BaseServiceError, ErrorCode
from cortex_review.core.logging import configure_logging, get_logger, log_error
from cortex_review.core.middleware import get_request_id, RequestContextMiddleware

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the session store on startup, release it on shutdown."""
    store = get_session_store()
    logger.info(
        "application_startup",
        version=__version__,
        sessions=len(store.list_all()),
    )
    yield
    dispose_storage()
    logger.info("application_shutdown")


def _envelope(status_code: int, body: ApiResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


async def service_error_handler(request: Request, exc: BaseServiceError):
    """Storage failures that escaped the core become a 503 envelope."""
    log_error(logger, exc, {"path": request.url.path, "method": request.method})
    return _envelope(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        ApiResponse.error_response(
            code=ErrorCode.STORAGE_ERROR,
            message=exc.message,
            details={"operation": exc.operation},
            request_id=get_request_id(request),
        ),
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        exc_type=type(exc).__name__,
    )
    return _envelope(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        ApiResponse.error_response(
            code=ErrorCode.INTERNAL_ERROR,
            message="Internal server error",
            details={"error_type": type(exc).__name__},
            request_id=get_request_id(request),
        ),
    )


def create_app(settings: Settings) -> FastAPI:
    """Build the application for ``settings``."""
    configure_logging(settings)

    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_middleware(RequestContextMiddleware)
    application.add_exception_handler(BaseServiceError, service_error_handler)
    application.add_exception_handler(Exception, unhandled_error_handler)
    application.include_router(api_router, prefix=settings.api_prefix)

    @application.get("/")
    async def root():
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "status": "running",
        }

    @application.get("/health")
    async def health():
        return {"status": "healthy", "version": settings.app_version}

    return application


app = create_app(get_settings())


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("cortex_review.main:app", host="0.0.0.0", port=8000)
