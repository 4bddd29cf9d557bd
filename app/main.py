import logging

from fastapi import FastAPI, Request, status
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from pymongo.errors import PyMongoError
import sentry_sdk

from app.schemas.common import ErrorResponse
from app.core.exceptions import AppException, DuplicateEntryError
from app.core.error_codes import ErrorCode
from app.core.logging import setup_logging

from app.api.routes import admins, auth, blog, health, portfolio
from app.core.config import settings
from app.services.auth import AuthService
from app.services.email import mailer
from app.stores.factory import close_store, get_store

logger = logging.getLogger(__name__)

if settings.SENTRY_DSN:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        traces_sample_rate=0.2,
        environment=settings.ENV,
        release=settings.GIT_SHA,
    )

app = FastAPI(title="CMS API", version="0.1.0")

def _error(status_code: int, code: ErrorCode, message: str | None, details: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=message or code.value,
            error_code=code,
            details=details,
        ).model_dump(mode="json", by_alias=True),
    )

def _debug_details(exc: Exception) -> dict | None:
    # never leak internals in production
    if settings.is_production:
        return None
    return {"exception": f"{type(exc).__name__}: {exc}"}

@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    payload = exc.detail if isinstance(exc.detail, dict) else {}
    code = payload.get("error_code", ErrorCode.INTERNAL_ERROR)
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, payload.get("user_message"))
    return _error(exc.status_code, code, payload.get("user_message"), payload.get("details"))

@app.exception_handler(RequestValidationError)
async def validation_handler(request: Request, exc: RequestValidationError):
    return _error(
        status.HTTP_400_BAD_REQUEST,
        ErrorCode.VALIDATION_ERROR,
        "Invalid request data",
        {"errors": [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in exc.errors()]},
    )

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    # Map plain HTTPExceptions (if any) into our envelope
    code_map = {
        401: ErrorCode.UNAUTHORIZED,
        403: ErrorCode.FORBIDDEN,
        404: ErrorCode.NOT_FOUND,
        405: ErrorCode.BAD_REQUEST,
        409: ErrorCode.CONFLICT,
    }
    return _error(exc.status_code, code_map.get(exc.status_code, ErrorCode.BAD_REQUEST), str(exc.detail) if exc.detail else None)

@app.exception_handler(DuplicateEntryError)
async def duplicate_handler(request: Request, exc: DuplicateEntryError):
    return _error(status.HTTP_400_BAD_REQUEST, ErrorCode.UNIQUE_CONSTRAINT_VIOLATION, f"Duplicate {exc.field}")

@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.exception("Integrity error on %s %s", request.method, request.url.path)
    return _error(status.HTTP_400_BAD_REQUEST, ErrorCode.DATABASE_ERROR, "Database error", _debug_details(exc))

@app.exception_handler(SQLAlchemyError)
async def sa_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorCode.DATABASE_ERROR, "Database error", _debug_details(exc))

@app.exception_handler(PyMongoError)
async def mongo_error_handler(request: Request, exc: PyMongoError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorCode.DATABASE_ERROR, "Database error", _debug_details(exc))

@app.exception_handler(Exception)
async def unhandled_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        ErrorCode.INTERNAL_ERROR,
        "Internal server error",
        _debug_details(exc),
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router, prefix=settings.API_PREFIX)
app.include_router(admins.router, prefix=settings.API_PREFIX)
app.include_router(blog.router, prefix=settings.API_PREFIX)
app.include_router(portfolio.router, prefix=settings.API_PREFIX)
app.include_router(health.router, prefix=settings.API_PREFIX)

scheduler: AsyncIOScheduler | None = None

async def _purge_reset_tokens():
    store = await get_store()
    await AuthService(store, mailer).purge_expired_tokens()

@app.on_event("startup")
async def on_startup():
    global scheduler
    setup_logging()
    await get_store()
    if settings.RESET_TOKEN_PURGE_MINUTES > 0:
        scheduler = AsyncIOScheduler()
        scheduler.add_job(_purge_reset_tokens, IntervalTrigger(minutes=settings.RESET_TOKEN_PURGE_MINUTES))
        scheduler.start()
    logger.info("CMS API started (env=%s, store=%s)", settings.ENV, settings.STORE_BACKEND)

@app.on_event("shutdown")
async def on_shutdown():
    global scheduler
    if scheduler:
        scheduler.shutdown(wait=False)
        scheduler = None
    await close_store()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=settings.SERVICE_PORT)
