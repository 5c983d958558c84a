from contextlib import asynccontextmanager, contextmanager
import logging

from fastapi import FastAPI
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from app.api.routes import router as api_router
from app.core.config import get_settings
from app.core.database import SessionLocal, get_db
from app.logging import configure_logging
from app.middleware.correlation_id import CorrelationIdMiddleware
from app.middleware.request_logging import RequestLoggingMiddleware
from app.otel import SERVICE_NAME, get_fastapi_server_request_hook, setup_otel
from app.platform.counters.service import entry_counter_service


configure_logging()
logger = logging.getLogger("app.lifecycle")


@contextmanager
def _startup_session_scope():
    override = app.dependency_overrides.get(get_db) if "app" in globals() else None
    if override is None:
        session = SessionLocal()
        try:
            yield session
        finally:
            session.close()
        return

    generator = override()
    session = next(generator)
    try:
        yield session
    finally:
        try:
            next(generator)
        except StopIteration:
            pass


def _seed_entry_counters() -> None:
    try:
        with _startup_session_scope() as session:
            result = entry_counter_service.ensure_initialized(session)
    except Exception as exc:
        logger.exception("entry_counter_seed_failed", extra={"error": str(exc)[:500]})
        return
    if result.ok:
        logger.info("entry_counter_seeded", extra={"status": result.message})
    else:
        logger.error("entry_counter_seed_failed", extra={"error": result.message})


@asynccontextmanager
async def lifespan(app: FastAPI):
    if get_settings().entry_counter_seed_on_startup:
        _seed_entry_counters()
    logger.info("system_started", extra={"status": "ok"})
    yield


settings = get_settings()

app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)
app.include_router(api_router)

if settings.otel_enabled:
    setup_otel(SERVICE_NAME, True)

if not getattr(app, "_is_instrumented_by_opentelemetry", False):
    FastAPIInstrumentor().instrument_app(app, server_request_hook=get_fastapi_server_request_hook())
