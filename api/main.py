"""
MotorPilot API

Motor insurance underwriting and claim decisioning service.

Settings (environment):
    MP_LOG_LEVEL                  Log level for the motorpilot loggers (INFO)
    MP_CONFIG_PACK                Configuration pack file (bundled pack)
    MP_DECISION_TIMEOUT_SECONDS   Overrides the pack's claim deadline
    MP_DOCS_ENABLED               Serve /docs and /openapi.json (true)
"""

import json
import logging
import os
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import motorpilot
from motorpilot.exceptions import (
    ClaimNotFoundError,
    ComputationError,
    DataUnavailable,
    InvalidTransitionError,
    MotorPilotError,
    RetrievalUnavailable,
    ValidationError,
)
from motorpilot.packs import SCHEMA_VERSION

from api.routes import claims, premium
from api.schemas.responses import HealthResponse, VersionResponse
from api.services import build_services

# =============================================================================
# Configuration
# =============================================================================

MP_LOG_LEVEL = os.getenv("MP_LOG_LEVEL", "INFO")
MP_DOCS_ENABLED = os.getenv("MP_DOCS_ENABLED", "true").lower() == "true"


def _decision_timeout():
    value = os.getenv("MP_DECISION_TIMEOUT_SECONDS")
    return float(value) if value else None


# =============================================================================
# Logging Setup (Structured JSON)
# =============================================================================

LOG_FIELDS = (
    "request_id",
    "claim_id",
    "application_id",
    "stage",
    "status",
    "attempt",
    "duration_ms",
    "decision_hash_short",
    "pack_id",
    "config_version",
    "error_code",
)


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        # Add extra fields if present
        for name in LOG_FIELDS:
            if hasattr(record, name):
                log_entry[name] = getattr(record, name)
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


logger = logging.getLogger("motorpilot")
logger.setLevel(getattr(logging, MP_LOG_LEVEL.upper(), logging.INFO))
if not any(isinstance(h.formatter, JSONFormatter) for h in logger.handlers):
    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())
    logger.addHandler(handler)


# =============================================================================
# Lifespan
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load the configuration pack and wire the pipelines on startup."""
    services = build_services(
        pack_path=os.getenv("MP_CONFIG_PACK") or None,
        decision_timeout_seconds=_decision_timeout(),
    )
    app.state.services = services
    logger.info(
        "MotorPilot starting",
        extra={
            "request_id": "startup",
            "pack_id": services.pack.pack_id,
            "config_version": services.pack.version[:12],
        },
    )
    yield
    logger.info("MotorPilot shutting down")


# =============================================================================
# FastAPI App
# =============================================================================

app = FastAPI(
    title="MotorPilot API",
    description="""
**Motor insurance underwriting and claim decisioning.**

MotorPilot quotes risk-adjusted premiums and decides motor damage claims
against policy limits. Every amount is traced to a tariff, a depreciation
bracket or a cited policy clause.

## Endpoints

1. `POST /premium` - Quote a premium from vehicle facts and violation history
2. `POST /claims/decision` - Decide a claim (idempotent per claim id)
3. `GET /claims/{claim_id}/decision` - Fetch a committed decision
4. `POST /claims/{claim_id}/review` - Resolve a claim held for manual review
    """,
    version=motorpilot.__version__,
    lifespan=lifespan,
    docs_url="/docs" if MP_DOCS_ENABLED else None,
    redoc_url="/redoc" if MP_DOCS_ENABLED else None,
    openapi_url="/openapi.json" if MP_DOCS_ENABLED else None,
)

# CORS (restrict in production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(premium.router)
app.include_router(claims.router)


# =============================================================================
# Middleware
# =============================================================================

@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Add request ID to all requests."""
    request_id = str(uuid.uuid4())[:8]
    request.state.request_id = request_id
    start = time.monotonic()

    response = await call_next(request)

    response.headers["X-Request-ID"] = request_id
    logger.debug(
        f"{request.method} {request.url.path} -> {response.status_code}",
        extra={
            "request_id": request_id,
            "duration_ms": int((time.monotonic() - start) * 1000),
        },
    )
    return response


# =============================================================================
# Error Mapping
# =============================================================================

STATUS_CODES: list[tuple[type, int]] = [
    (ValidationError, 422),
    (DataUnavailable, 503),
    (RetrievalUnavailable, 503),
    (ComputationError, 504),
    (ClaimNotFoundError, 404),
    (InvalidTransitionError, 409),
]


def status_for(error: MotorPilotError) -> int:
    for error_type, status_code in STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return 500


@app.exception_handler(MotorPilotError)
async def motorpilot_error_handler(request: Request, exc: MotorPilotError):
    """Map engine errors to HTTP statuses; payloads carry identifiers only."""
    status_code = status_for(exc)
    log = logger.error if status_code >= 500 else logger.info
    log(
        exc.message,
        extra={
            "request_id": getattr(request.state, "request_id", "unknown"),
            "claim_id": exc.claim_id,
            "stage": exc.stage,
            "error_code": exc.code,
        },
    )
    return JSONResponse(status_code=status_code, content=exc.to_dict())


# =============================================================================
# Health Endpoints
# =============================================================================

@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(request: Request):
    """Liveness probe."""
    services = request.app.state.services
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        engine_version=motorpilot.__version__,
        config_version=services.pack.version[:12],
    )


@app.get("/version", response_model=VersionResponse, tags=["Info"])
async def version_info(request: Request):
    """Return engine and configuration pack versions."""
    pack = request.app.state.services.pack
    return VersionResponse(
        engine_version=motorpilot.__version__,
        pack_id=pack.pack_id,
        pack_name=pack.name,
        config_version=pack.version,
        schema_version=SCHEMA_VERSION,
        currency=pack.currency,
    )


# =============================================================================
# Main
# =============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
