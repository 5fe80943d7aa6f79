"""FastAPI glue over the designer core.

``create_app`` builds an app around one ``FieldStore``; nothing is held at
module level, so every test (or process) gets its own store.
"""
import logging
import time
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from form_designer.api.routes import documents, fields
from form_designer.settings import DesignerSettings, configure_logging, load_settings
from form_designer.storage import FieldStore

logger = logging.getLogger(__name__)


def create_app(store: Optional[FieldStore] = None,
               settings: Optional[DesignerSettings] = None) -> FastAPI:
    app = FastAPI(title="PDF Form Designer API")
    app.state.store = store if store is not None else FieldStore()
    app.state.settings = settings if settings is not None else load_settings()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        t0 = time.perf_counter()
        logger.info("REQUEST  %s %s", request.method, request.url.path)
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - t0) * 1000
        logger.info("RESPONSE %s %s - status: %d, time: %.1fms",
                    request.method, request.url.path, response.status_code, elapsed_ms)
        return response

    app.include_router(documents.router, prefix="/api")
    app.include_router(fields.router, prefix="/api")

    @app.get("/")
    def root():
        return {"status": "ok", "message": "PDF Form Designer API"}

    return app


def run(host: str = "127.0.0.1", port: int = 8000):
    settings = load_settings()
    configure_logging(settings.debug_mode)
    import uvicorn
    uvicorn.run(create_app(settings=settings), host=host, port=port)


if __name__ == "__main__":
    run()
