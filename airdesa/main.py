import logging
import os

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api import (
    bills,
    complaints,
    customers,
    public,
    readings,
    receipts,
    reports,
    transactions,
    users,
)
from .auth import ensure_admin
from .db import init_db
from .envelope import fail
from .errors import BillingError, PersistenceError

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Village Water Billing")

# Strict CORS configuration placeholder; set via env `CORS_ALLOWED`
allowed = os.getenv("CORS_ALLOWED", "").split(",") if os.getenv("CORS_ALLOWED") else []
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for module in (
    users, customers, readings, bills, transactions, reports, receipts, complaints, public
):
    app.include_router(module.router)


@app.on_event("startup")
def on_startup():
    init_db()
    # Ensure default admin exists for initial setup (password from env only)
    ensure_admin(os.getenv("ADMIN_USER", "admin"), os.getenv("ADMIN_PASSWORD"))


@app.exception_handler(BillingError)
def billing_error_handler(request: Request, exc: BillingError):
    return JSONResponse(status_code=exc.status_code, content=fail(exc.message, exc.errors))


@app.exception_handler(RequestValidationError)
def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = {}
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        errors[".".join(loc) or "request"] = err.get("msg", "Invalid value")
    return JSONResponse(status_code=422, content=fail("Validation failed", errors))


@app.exception_handler(StarletteHTTPException)
def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=fail(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(SQLAlchemyError)
def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("database failure on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=PersistenceError.status_code, content=fail(PersistenceError.default_message)
    )


@app.get("/api/health")
def health():
    return {"status": "ok"}
