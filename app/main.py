import structlog
from fastapi import FastAPI

from app.api.todos import router as todos_router
from app.config import get_settings
from app.observability.logging import configure_logging
from app.observability.middleware import RequestContextMiddleware
from app.observability.tracing import configure_telemetry, shutdown_telemetry
from app.services import todo_store
from app.services.auth_client import close_auth_http_client
from app.services.errors import CollaboratorUnavailable


app = FastAPI(title="Todo Service", version="0.1.0")
app.add_middleware(RequestContextMiddleware)
app.include_router(todos_router)


@app.on_event("startup")
async def _startup() -> None:
    settings = get_settings()
    configure_logging(settings)
    configure_telemetry(settings)

    if settings.seed_default_items:
        try:
            await todo_store.seed_default_items()
        except CollaboratorUnavailable:
            structlog.get_logger("startup").exception("seed.failed")

    structlog.get_logger("startup").info("service is up and running!", service_name=settings.service_name)


@app.on_event("shutdown")
async def _shutdown() -> None:
    await close_auth_http_client()
    await todo_store.close_store_client()
    shutdown_telemetry()


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
