"""FastAPI application setup and runtime lifespan for EcoSphere."""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from fastapi import FastAPI, Request

from ecosphere.api import router as api_router
from ecosphere.config import settings
from ecosphere.runtime import Runtime, build_runtime
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="main")


def create_app(runtime_factory: Callable[[], Runtime] = build_runtime) -> FastAPI:
    """Build the app; the runtime is created on startup and torn down on shutdown."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        runtime = runtime_factory()
        app.state.runtime = runtime
        if runtime.settings.scheduler_autostart:
            runtime.scheduler.start()
        try:
            yield
        finally:
            runtime.shutdown()
            app.state.runtime = None

    app = FastAPI(title="EcoSphere Green Index", lifespan=lifespan)
    app.state.runtime = None

    @app.get("/health")
    def health(request: Request):
        """Liveness plus the scheduler's current state."""
        runtime = request.app.state.runtime
        state = runtime.scheduler.state.value if runtime else "starting"
        return {"status": "ok", "scheduler": state}

    app.include_router(api_router, prefix="/v1")
    return app


app = create_app()
logger.debug("App created", extra={"autostart": settings.scheduler_autostart})
