import logging
import time
import traceback
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv

# load .env from the project root wherever uvicorn is started from
_PROJ_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_PROJ_ROOT / ".env")

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.admin import admin_router
from app.api.auth import router as auth_router
from app.api.checkout import router as checkout_router
from app.api.orders import router as orders_router
from app.api.payment import router as payment_router
from app.core.config import is_paystack_configured, settings
from app.core.database import build_engine, init_db, ping_db
from app.core.rate_limit import limiter
from app.logging import setup_logging
from app.models import ErrorLog
from app.services.order_store import OrderStore
from app.services.paystack import PaystackClient

setup_logging(settings.log_level)
log = logging.getLogger("storefront")


def _cors_origins_list() -> list[str]:
    if not settings.cors_origins or settings.cors_origins.strip() == "*":
        return ["*"]
    return [o.strip() for o in settings.cors_origins.split(",") if o.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    # one engine, one store, one gateway client per process
    engine = build_engine(settings.database_url)
    init_db(engine)
    app.state.engine = engine
    app.state.order_store = OrderStore(engine)
    app.state.paystack = PaystackClient(
        settings.paystack_secret_key,
        base_url=settings.paystack_base_url,
        timeout=settings.paystack_timeout_seconds,
    )
    log.info("PAYSTACK_SECRET_KEY loaded: %s", "yes" if is_paystack_configured() else "NO (card/transfer checkout disabled)")
    try:
        yield
    finally:
        app.state.paystack.close()
        engine.dispose()


app = FastAPI(
    title="Storefront API",
    description="Checkout, Paystack payment verification and webhook reconciliation",
    lifespan=lifespan,
)
app.state.limiter = limiter


def _error_response(request: Request, status_code: int, detail: str) -> JSONResponse:
    rid = getattr(request.state, "request_id", None)
    body = {"error": detail, "status_code": status_code}
    if rid:
        body["request_id"] = rid
    return JSONResponse(status_code=status_code, content=body)


def _rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    log.warning("Rate limit exceeded: path=%s detail=%s", request.url.path, exc.detail)
    return _error_response(request, 429, "Too many requests. Please wait a minute and try again.")


def _validation_error_message(exc: RequestValidationError) -> str:
    errs = exc.errors()
    if not errs:
        return "Invalid request."
    first = errs[0]
    loc = [str(p) for p in (first.get("loc") or []) if p != "body"]
    field = ".".join(loc)
    if first.get("type") == "missing":
        return f"Missing field: {field}." if field else "Request body is missing."
    msg = first.get("msg") or "Invalid request."
    return f"{field}: {msg}" if field else msg


@app.exception_handler(RequestValidationError)
def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errs = exc.errors()
    log.warning(
        "Request validation error (422): path=%s method=%s detail=%s",
        request.url.path,
        request.method,
        errs,
    )
    rid = getattr(request.state, "request_id", None)
    body = {
        "error": _validation_error_message(exc),
        "status_code": 422,
        "detail": [{"loc": e.get("loc"), "msg": e.get("msg"), "type": e.get("type")} for e in errs],
    }
    if rid:
        body["request_id"] = rid
    return JSONResponse(status_code=422, content=body)


app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)


@app.exception_handler(HTTPException)
def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return _error_response(request, exc.status_code, exc.detail if isinstance(exc.detail, str) else str(exc.detail))


@app.exception_handler(Exception)
def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    log.exception("Unhandled exception: path=%s %s", request.url.path, exc)
    engine = getattr(request.app.state, "engine", None)
    if engine is not None:
        try:
            with Session(engine) as db:
                db.add(ErrorLog(
                    endpoint=request.url.path,
                    method=request.method,
                    error_message=str(exc)[:2000],
                    stack_trace=traceback.format_exc()[:10000],
                ))
                db.commit()
        except SQLAlchemyError as e:
            log.warning("ErrorLog write failed: %s", e)
    path = (request.url.path or "").strip()
    if path.startswith("/api/checkout"):
        user_msg = "Checkout failed. Please try again or contact support."
    else:
        user_msg = "Unexpected server error."
    return JSONResponse(status_code=500, content={"error": user_msg})


@app.middleware("http")
async def request_id_and_latency(request: Request, call_next):
    request.state.request_id = str(uuid.uuid4())
    start = time.perf_counter()
    response = await call_next(request)
    latency_ms = (time.perf_counter() - start) * 1000
    response.headers["X-Request-ID"] = request.state.request_id
    log.info(
        "request_id=%s method=%s path=%s status=%s latency_ms=%.2f",
        request.state.request_id,
        request.method,
        request.url.path,
        response.status_code,
        latency_ms,
    )
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(auth_router)
app.include_router(checkout_router)
app.include_router(payment_router)
app.include_router(orders_router)
app.include_router(admin_router)


@app.get("/health")
def health(request: Request):
    return {
        "status": "ok",
        "paystack_configured": is_paystack_configured(),
        "database": "ok" if ping_db(request.app.state.engine) else "error",
    }
