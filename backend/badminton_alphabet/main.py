import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.encoders import jsonable_encoder
from sqlalchemy.exc import SQLAlchemyError
from starlette.responses import JSONResponse

from . import admin_routes, auth_routes, invitation_routes, progress_routes, rubric_routes, user_routes
from .config import Settings, get_settings
from .db.monitoring import get_pool_snapshot
from .db.session import Database, get_database
from .errors import AlphabetError
from .identity import IdentityService
from .identity_provider import HttpIdentityProvider, IdentityProvider
from .logging_config import configure_logging


logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    *,
    identity_provider: Optional[IdentityProvider] = None,
    database: Optional[Database] = None,
) -> FastAPI:
    """Build the API around an explicitly constructed store and identity provider."""
    configure_logging()
    settings = settings or get_settings()
    database = database or Database(settings)
    if identity_provider is None and settings.identity_configured:
        identity_provider = HttpIdentityProvider(settings)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        database.dispose()

    app = FastAPI(title="Badminton Alphabet Backend", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.settings = settings
    app.state.database = database
    app.state.identity_service = IdentityService(database, identity_provider)

    logger.info("Backend starting with database configured: %s", database.configured)
    logger.info("Identity provider configured: %s", identity_provider is not None)

    if settings.auto_create_schema and database.configured:
        database.create_schema()

    _register_error_handlers(app)
    _register_health_routes(app)
    for module in (auth_routes, invitation_routes, rubric_routes, user_routes, progress_routes, admin_routes):
        app.include_router(module.router)
    app.include_router(auth_routes.callback_router)

    @app.api_route(
        "/api/{path:path}",
        methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        include_in_schema=False,
    )
    def api_not_found(path: str) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": "not found"})

    return app


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AlphabetError)
    async def _alphabet_error(request: Request, exc: AlphabetError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        else:
            logger.warning("%s %s rejected (%s): %s", request.method, request.url.path, exc.status_code, exc.message)
        content: Dict[str, Any] = {"error": exc.message}
        if exc.details:
            content["details"] = jsonable_encoder(exc.details)
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def _request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning("%s %s malformed request", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "invalid request", "details": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(SQLAlchemyError)
    async def _database_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.exception("%s %s database error", request.method, request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": str(exc.orig) if getattr(exc, "orig", None) else str(exc)},
        )


def _register_health_routes(app: FastAPI) -> None:
    @app.get("/api/health")
    def health(request: Request) -> Dict[str, Any]:
        return {
            "status": "ok",
            "configured": request.app.state.database.configured,
            "identity_provider": request.app.state.identity_service.provider_configured,
        }

    @app.get("/api/health/database")
    def database_health(database: Database = Depends(get_database)) -> JSONResponse:
        if not database.configured:
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "unavailable", "error": "database not configured"},
            )
        try:
            database.ping()
        except SQLAlchemyError as exc:
            logger.warning("Database health check failed: %s", exc)
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "unavailable", "error": str(exc)},
            )
        return JSONResponse(content={**get_pool_snapshot(database.engine), "status": "ok"})


app = create_app()
