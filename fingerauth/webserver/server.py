"""
FastAPI WebServer - Main Application
Fingerprint verification server: JSON in, API-Gateway style envelope out.
"""

from concurrent.futures import ThreadPoolExecutor
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from fingerauth.config import PARALLEL_SCORING, SCORING_WORKERS, SIMILARITY_THRESHOLD, REQUIRED_MATCHES
from fingerauth.decision import VerificationDecisionEngine
from fingerauth.matching import OrbMatchingEngine
from fingerauth.record_store import DynamoDBRecordStore
from fingerauth.template_codec import TemplateCodec

from .config import (
    HOST, PORT, MAX_WORKERS, CORS_ORIGINS, CORS_ALLOW_CREDENTIALS,
    RECORD_STORE, DYNAMODB_TABLE, AWS_REGION, VERBOSE
)
from .database import BiometricDatabase
from .logger import log_startup, log_shutdown, log_access, get_logger, attach_core_logging
from .routes import biometric_router
from .routes import biometric_routes


# Create FastAPI app
app = FastAPI(
    title="Fingerprint Verification Server",
    version="1.0.0",
    description="Multi-sample fingerprint verification (probe vs three enrolled references)"
)


# Global resources
executor = None
scoring_executor = None
record_store = None

logger = get_logger("server")


def get_client_ip(request: Request) -> str:
    """Extract client IP address from request (handles proxies)."""
    forwarded = request.headers.get('X-Forwarded-For')
    if forwarded:
        return forwarded.split(',')[0].strip()

    real_ip = request.headers.get('X-Real-IP')
    if real_ip:
        return real_ip

    return request.client.host if request.client else "unknown"


def create_record_store(kind: str = RECORD_STORE):
    """Build the configured record store gateway."""
    if kind == "dynamodb":
        return DynamoDBRecordStore(table_name=DYNAMODB_TABLE, region_name=AWS_REGION)
    return BiometricDatabase()


@app.on_event("startup")
async def startup():
    """Initialize server resources on startup."""
    global executor, scoring_executor, record_store

    attach_core_logging()
    logger.info("Starting fingerprint verification webserver...")

    record_store = create_record_store()
    logger.info(f"✓ Record store initialized ({RECORD_STORE})")

    executor = ThreadPoolExecutor(max_workers=MAX_WORKERS, thread_name_prefix="verify")
    logger.info(f"✓ ThreadPoolExecutor initialized ({MAX_WORKERS} workers)")

    if PARALLEL_SCORING:
        scoring_executor = ThreadPoolExecutor(max_workers=SCORING_WORKERS, thread_name_prefix="score")

    engine = VerificationDecisionEngine(
        TemplateCodec(OrbMatchingEngine()),
        record_store=record_store,
        executor=scoring_executor
    )

    # Set global references in route modules
    biometric_routes.set_globals(executor, engine)

    log_startup({
        'host': HOST,
        'port': PORT,
        'record_store': RECORD_STORE,
        'threshold': SIMILARITY_THRESHOLD,
        'required_matches': REQUIRED_MATCHES,
        'max_workers': MAX_WORKERS,
        'parallel_scoring': PARALLEL_SCORING
    })

    logger.info("=" * 70)
    logger.info("FINGERPRINT VERIFICATION WEBSERVER READY")
    logger.info("=" * 70)


@app.on_event("shutdown")
async def shutdown():
    """Cleanup resources on shutdown."""
    global executor, scoring_executor, record_store

    logger.info("Shutting down fingerprint verification webserver...")

    log_shutdown()

    for pool in (executor, scoring_executor):
        if pool:
            pool.shutdown(wait=True)
    executor = scoring_executor = None
    logger.info("✓ Executors shut down")

    if isinstance(record_store, BiometricDatabase):
        record_store.close()
        logger.info("✓ Database closed")
    record_store = None

    biometric_routes.set_globals(None, None)
    logger.info("Shutdown complete")


# Middleware for request logging
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests."""
    start = time.time()

    response = await call_next(request)

    duration = (time.time() - start) * 1000

    log_access(
        ip=get_client_ip(request),
        method=request.method,
        endpoint=request.url.path,
        status_code=response.status_code,
        duration_ms=duration
    )

    return response


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Include routers
app.include_router(biometric_router, prefix="/api", tags=["Biometric"])


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy" if biometric_routes.engine is not None else "starting",
        "record_store": RECORD_STORE,
        "threshold": SIMILARITY_THRESHOLD,
        "required_matches": REQUIRED_MATCHES,
        "max_workers": MAX_WORKERS
    }


# Export app
__all__ = ['app']


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "fingerauth.webserver.server:app",
        host=HOST,
        port=PORT,
        reload=False,
        log_level="info" if VERBOSE else "warning"
    )
