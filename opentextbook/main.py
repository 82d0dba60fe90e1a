import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse
from sqlalchemy import text

from .api import books as books_router
from .api import users as users_router
from .core.auth import get_request_context
from .core.config import Settings, get_settings
from .core.errors import AuthError, NotFoundError, StorageError, ValidationError
from .core.sessions import SessionStore
from .core.views import redirect
from .database import build_engine, build_session_factory, init_db
from .schemas.error import ErrorResponse

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    engine = build_engine(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings)
        if settings.create_tables_on_startup:
            init_db(engine)
        logger.info("OpenTextBook started (environment=%s)", settings.environment)
        yield

    app = FastAPI(title="OpenTextBook API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.sessions = SessionStore(max_age_seconds=settings.session_max_age_seconds)

    origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["Content-Type", "Accept", "Origin"],
    )

    if settings.is_production:
        @app.middleware("http")
        async def force_https(request: Request, call_next):
            if request.headers.get("x-forwarded-proto") != "https":
                host = request.headers.get("host", request.url.netloc)
                target = f"https://{host}{request.url.path}"
                if request.url.query:
                    target += f"?{request.url.query}"
                return RedirectResponse(target, status_code=302)
            return await call_next(request)

    app.include_router(users_router.router)
    app.include_router(books_router.router)

    @app.get("/checking", tags=["meta"], response_class=PlainTextResponse)
    def checking():
        return "The server is working"

    @app.get("/health", tags=["meta"])
    def health():
        return {"status": "ok", "environment": settings.environment}

    @app.get("/health/db", tags=["meta"])
    def health_db():
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return {"status": "ok", "database": "reachable"}
        except Exception as e:
            logger.warning("Database health check failed: %s", e)
            return {"status": "error", "database": "unreachable"}

    # Global error handlers
    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        body = ErrorResponse(detail=exc.message, errors=exc.errors)
        return JSONResponse(status_code=400, content=body.model_dump(mode="json"))

    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError):
        ctx = get_request_context(request)
        ctx.flash("danger", exc.message)
        return redirect(ctx, "/users/login")

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content=ErrorResponse(detail=exc.message).model_dump(mode="json"))

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        # details were logged where the failure happened
        return JSONResponse(status_code=500, content=ErrorResponse(detail="Internal Server Error").model_dump(mode="json"))

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content=ErrorResponse(detail=str(exc.detail)).model_dump(mode="json"))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=422, content=ErrorResponse(detail="Validation Error").model_dump(mode="json"))

    return app


app = create_app()
