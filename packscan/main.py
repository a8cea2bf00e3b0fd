from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import structlog

from .api.v1 import api_router
from .api.v1.endpoints.analyze import ERROR_RESPONSES, analyze_packaging
from .core.config import Settings, get_settings
from .db.database import DatabaseManager, init_db, close_db
from .services.ai_gateway import AIGatewayClient
from .services.analysis import PackagingAnalyzer
from .services.storage import ImageStore


def configure_structlog(json_logs: bool = True) -> None:
    """Configure structured logging on top of stdlib logging."""
    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


logger = structlog.get_logger("packscan.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    """
    settings: Settings = app.state.settings

    settings.setup_logging()
    logger.info("Starting PackScan service", version=settings.app_version)

    try:
        await init_db(app.state.db)
        logger.info("Application startup completed")
        yield

    except Exception as e:
        logger.error("Failed to start application", error=str(e))
        raise

    finally:
        logger.info("Shutting down application")
        await app.state.analyzer.gateway.close()
        await close_db(app.state.db)
        logger.info("Application shutdown completed")


def error_response(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def create_application(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure FastAPI application.
    """
    settings = settings or get_settings()
    configure_structlog(settings.log_json)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Identifies food packaging materials from photographs",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan
    )

    app.state.settings = settings
    app.state.db = DatabaseManager(settings.database_url, echo=settings.database_echo)
    app.state.image_store = ImageStore(settings.bucket_path)
    app.state.analyzer = PackagingAnalyzer(
        AIGatewayClient.from_settings(settings),
        generate_structure_images=settings.generate_structure_images
    )

    # CORS preflight requests are answered here
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins_list(),
        allow_credentials=False,
        allow_methods=settings.get_cors_methods_list(),
        allow_headers=settings.get_cors_headers_list(),
    )

    app.include_router(api_router, prefix="/api/v1")

    # Legacy path of the serverless analyze function
    app.add_api_route(
        "/functions/v1/analyze-packaging",
        analyze_packaging,
        methods=["POST"],
        responses=ERROR_RESPONSES,
        tags=["analysis"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """
        Log HTTP requests with structured logging.
        """
        logger.info(
            "HTTP request started",
            method=request.method,
            url=str(request.url),
            client_ip=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
        )

        response = await call_next(request)

        logger.info(
            "HTTP request completed",
            method=request.method,
            url=str(request.url),
            status_code=response.status_code,
            client_ip=request.client.host if request.client else None,
        )

        return response

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """
        Handle HTTP exceptions with structured logging.
        """
        logger.error(
            "HTTP exception occurred",
            status_code=exc.status_code,
            detail=exc.detail,
            method=request.method,
            url=str(request.url),
        )
        return error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """
        Malformed request bodies are client errors.
        """
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = first.get("msg", "Invalid request")
        logger.error("Request validation failed", errors=len(errors), url=str(request.url))
        return error_response(400, f"Invalid request: {location}: {message}" if location else f"Invalid request: {message}")

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """
        Handle general exceptions with structured logging.
        """
        logger.error(
            "Unhandled exception occurred",
            exception=str(exc),
            exception_type=type(exc).__name__,
            method=request.method,
            url=str(request.url),
        )
        return error_response(500, "An unexpected error occurred")

    @app.get("/")
    async def root():
        """
        Root endpoint.
        """
        return {
            "message": f"Welcome to {settings.app_name}",
            "version": settings.app_version,
            "status": "operational",
            "docs_url": "/docs" if settings.debug else "Documentation disabled in production"
        }

    return app


# Create application instance
app = create_application()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "packscan.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
        access_log=True
    )
