import time
import uuid
from datetime import datetime, timezone

from fastapi import Depends, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from inkgenius.core.config import get_settings
from inkgenius.core.exceptions import (
    AppError,
    app_exception_handler,
    generic_exception_handler,
    not_found_handler,
    validation_exception_handler,
)
from inkgenius.core.logging import bind_request_id, configure_logging, get_logger
from inkgenius.db.init import close_db, init_db
from inkgenius.deps import rate_limit
from inkgenius.routers import auth, credits, generate, payments, subscribe
from inkgenius.services.rate_limit import close_redis

settings = get_settings()
configure_logging(debug=settings.debug)
log = get_logger(__name__)

app = FastAPI(
    title="InkGenius API",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_id_middleware(request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    bind_request_id(request_id)
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    log.info(
        "request",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(duration_ms, 2),
    )
    response.headers["X-Request-ID"] = request_id
    return response


app.add_exception_handler(AppError, app_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(404, not_found_handler)
app.add_exception_handler(Exception, generic_exception_handler)

# Routers; everything under /api is rate limited per client IP
limited = [Depends(rate_limit)]
app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(credits.router, prefix="/api/credits", tags=["credits"], dependencies=limited)
app.include_router(payments.router, prefix="/api/payments", tags=["payments"], dependencies=limited)
app.include_router(generate.router, prefix="/api/generate", tags=["generate"], dependencies=limited)
app.include_router(subscribe.router, prefix="/api/subscribe", tags=["subscribe"], dependencies=limited)


@app.on_event("startup")
async def startup():
    if settings.sentry_dsn:
        import sentry_sdk
        sentry_sdk.init(dsn=settings.sentry_dsn, environment=settings.env, traces_sample_rate=0.1)
        log.info("startup", msg="Sentry enabled")
    await init_db()
    log.info("startup", msg="DB connected", env=settings.env, providers=settings.image_providers)


@app.on_event("shutdown")
async def shutdown():
    await close_redis()
    await close_db()
    log.info("shutdown")


@app.get("/health")
async def health():
    """Health check for load balancers and monitoring."""
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.env,
    }
