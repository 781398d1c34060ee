import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy.exc import IntegrityError
from starlette.requests import Request

from certverify.api.v1.router import api_router
from certverify.core.config import settings
from certverify.core.errors import CertificateError
from certverify.core.logging import set_request_id, setup_logging
from certverify.db.bootstrap import run_migrations_and_seed

setup_logging()
logger = logging.getLogger(__name__)

api = FastAPI(
    title="Certificate Issuance & Verification API",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    swagger_ui_parameters={"displayRequestDuration": True, "persistAuthorization": True},
)

api.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # ajuste para domínios específicos em produção
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@api.middleware("http")
async def request_id_middleware(request: Request, call_next):
    rid = set_request_id(request.headers.get("X-Request-ID") or None)
    response = await call_next(request)
    response.headers["X-Request-ID"] = rid
    return response


# métricas /metrics (Prometheus)
Instrumentator().instrument(api).expose(api, include_in_schema=False, should_gzip=True)

api.include_router(api_router, prefix="/api/v1")


@api.get("/healthz", tags=["health"])
def healthz():
    return {"status": "ok"}


@api.on_event("startup")
def startup():
    if settings.RUN_MIGRATIONS:
        run_migrations_and_seed()


@api.exception_handler(CertificateError)
def handle_certificate_error(request: Request, exc: CertificateError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@api.exception_handler(IntegrityError)
def handle_integrity_error(request: Request, exc: IntegrityError):
    return JSONResponse(
        status_code=409,
        content={"code": "UNIQUE_VIOLATION", "message": "Duplicate record.", "details": str(getattr(exc, "orig", exc))},
    )


@api.exception_handler(Exception)
def handle_unexpected(request: Request, exc: Exception):
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"code": "INTERNAL_ERROR", "message": "Internal error.", "details": None},
    )
