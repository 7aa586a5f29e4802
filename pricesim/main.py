import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from pricesim.api.routes import router as api_router
from pricesim.config import Settings, get_settings
from pricesim.engine import Engine, create_engine
from pricesim.history.backends import HistoryStoreError

log = logging.getLogger("main")


def configure_logging(level: str = "INFO") -> None:
    """Single console handler for every pricesim logger."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(engine: Optional[Engine] = None, settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    engine = engine or create_engine(settings)

    app = FastAPI(title="Price Simulator API", version="0.1.0")
    app.state.engine = engine
    app.state.admin_token = settings.admin_token
    app.include_router(api_router)

    @app.on_event("startup")
    async def _startup():
        # Poll once immediately, then on the configured interval.
        if settings.poll_enabled:
            engine.start()

    @app.on_event("shutdown")
    async def _shutdown():
        await engine.stop()

    @app.exception_handler(HistoryStoreError)
    async def _store_error(request: Request, exc: HistoryStoreError):
        log.error("Store write failed path=%s error=%s", request.url.path, exc)
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        if request.method == "POST" and request.url.path == "/api/admin/random-prices":
            return JSONResponse(status_code=400, content={"error": "enabled must be boolean"})
        return await request_validation_exception_handler(request, exc)

    @app.get("/")
    def root():
        return {"message": "Price Simulator API", "version": app.version}

    @app.get("/health")
    def health():
        return {
            "status": "ok",
            "app_env": settings.app_env,
            "provider_config": settings.provider,
            "provider_loaded": engine.provider.__class__.__name__,
            "use_random_prices": engine.get_random_mode(),
            "poller_running": engine.poller.is_running,
        }

    return app


_settings = get_settings()
configure_logging(_settings.log_level)
app = create_app(settings=_settings)
