"""FastAPI application entrypoint.

`create_app` wires settings, the database engine, the contact rate
limiter, the background task dispatcher, the upload store and the mailer
onto `app.state`, registers the envelope error handlers and includes the
entity routers from `routes.py`.

Endpoints implemented:
- POST /api/auth/login
- /api/profile (get, save, stats, avatar, resume)
- /api/projects (CRUD, featured, category, images)
- /api/skills (CRUD, stats, category)
- /api/experience, /api/education (CRUD, logo)
- /api/contact (submit, list, stats, open, status, reply, spam)
- GET /health
- /uploads/* static media
"""

import json
import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import services
from .config import Settings
from .database import build_engine, create_db_and_tables
from .errors import PortfolioError, error_body
from .routes import ROUTERS
from .utils.mailer import SMTPMailer
from .utils.rate_limit import InMemoryRateLimiter
from .utils.tasks import TaskDispatcher
from .utils.uploads import URL_PREFIX, UploadStore

logger = logging.getLogger("portfolio_api.api")


def _request_log(request: Request, req_id: str, started: float, **extra) -> str:
    entry = {
        "request_id": req_id,
        "path": request.url.path,
        "method": request.method,
        **extra,
        "duration_ms": round((time.perf_counter() - started) * 1000.0, 2),
        "client": request.client.host if request.client else "unknown",
    }
    return json.dumps(entry, ensure_ascii=True)


def _validation_details(exc: RequestValidationError) -> list:
    details = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        details.append({"field": ".".join(loc) or "body", "message": err.get("msg", "invalid value")})
    return details


def create_app(settings: Optional[Settings] = None, mailer=None) -> FastAPI:
    """Build the application.

    `mailer` defaults to an SMTP mailer when `EMAIL_HOST` is configured;
    tests pass a fake one.
    """
    settings = settings or Settings()
    if not logging.getLogger().handlers:
        logging.basicConfig(level=settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = build_engine(settings.DATABASE_URL)
        create_db_and_tables(engine)
        uploads = UploadStore.from_settings(settings)
        uploads.ensure_dirs()
        app.state.engine = engine
        app.state.uploads = uploads
        app.state.limiter = InMemoryRateLimiter()
        app.state.dispatcher = TaskDispatcher()
        if mailer is not None:
            app.state.mailer = mailer
        elif settings.mail_configured:
            app.state.mailer = SMTPMailer.from_settings(settings)
        else:
            app.state.mailer = None
        if settings.ADMIN_USERNAME and settings.ADMIN_PASSWORD:
            with Session(engine) as session:
                services.AuthService(session, settings).ensure_admin(settings.ADMIN_USERNAME, settings.ADMIN_PASSWORD)
        logger.info("startup env=%s mail=%s", settings.ENV, app.state.mailer is not None)
        try:
            yield
        finally:
            app.state.dispatcher.shutdown()
            engine.dispose()
            logger.info("shutdown")

    app = FastAPI(title="Portfolio API", lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.CLIENT_URL],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):
        req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
        request.state.request_id = req_id
        started = time.perf_counter()
        response: Response
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("request_failed %s", _request_log(request, req_id, started))
            raise
        response.headers["X-Request-ID"] = req_id
        if request.url.path.startswith("/api"):
            logger.info("request_done %s", _request_log(request, req_id, started, status_code=response.status_code))
        return response

    @app.exception_handler(PortfolioError)
    async def portfolio_error_handler(request: Request, exc: PortfolioError):
        return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.details), headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content=error_body("Validation Error", _validation_details(exc)))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return JSONResponse(status_code=exc.status_code, content=error_body(message), headers=getattr(exc, "headers", None))

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.exception("database_error request_id=%s", getattr(request.state, "request_id", ""))
        return JSONResponse(status_code=500, content=error_body("Server Error"))

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("unhandled_error request_id=%s", getattr(request.state, "request_id", ""))
        return JSONResponse(status_code=500, content=error_body("Server Error"))

    for router in ROUTERS:
        app.include_router(router)

    app.mount(URL_PREFIX, StaticFiles(directory=str(settings.UPLOAD_DIR), check_dir=False), name="uploads")

    @app.get("/health")
    def health():
        """Lightweight health check for uptime monitoring."""
        return {"status": "ok", "env": settings.ENV}

    return app


app = create_app()
