"""Main FastAPI application for the monthly plan backend."""
from fastapi import FastAPI, Request

from monthplan.api.routes.drafts import router as drafts_router
from monthplan.api.routes.jobs import router as jobs_router
from monthplan.api.routes.plans import router as plans_router
from monthplan.api.routes.task import router as task_router
from monthplan.core.config import settings
from monthplan.core.logging import configure_logging
from monthplan.core.middleware import RequestIDMiddleware
from monthplan.observability.client import init_opik
from monthplan.observability.tracing import trace

configure_logging(log_level=settings.log_level)

app = FastAPI(title=settings.app_name, version="0.1.0")
app.add_middleware(RequestIDMiddleware)
app.include_router(plans_router)
app.include_router(drafts_router)
app.include_router(task_router)
app.include_router(jobs_router)


@app.on_event("startup")
async def startup_observability() -> None:
    """Initialize observability backends after the event loop starts."""
    init_opik()


@app.get("/health", tags=["health"], summary="Readiness probe")
async def health_check(request: Request) -> dict[str, str]:
    """Return a simple status payload so automation can probe the API."""
    with trace("http.health_check", metadata={"route": "/health"}, request_id=request.state.request_id):
        return {"status": "ok"}
