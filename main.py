from __future__ import annotations

import logging
import os
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse

from buckets.router import router as buckets_router
from connection.router import router as connection_router
from core.exception_handlers import register_exception_handlers
from core.session import ConsoleSession
from core.settings import Settings, get_settings
from health.router import router as health_router
from objects.router import preview_router
from objects.router import router as objects_router

log = logging.getLogger(__name__)


def _mount_spa(app: FastAPI, static_dir: str, api_prefix: str) -> None:
    """
    Serve a built single-page app: real files as-is, anything else that is
    not an API path falls back to index.html.
    """
    root = os.path.abspath(static_dir)
    index = os.path.join(root, "index.html")
    if not os.path.isfile(index):
        log.warning("CONSOLE_STATIC_DIR=%s has no index.html; not serving UI", static_dir)
        return

    @app.get("/{path:path}", include_in_schema=False)
    async def spa(path: str):
        if api_prefix and ("/" + path).startswith(api_prefix + "/"):
            return JSONResponse(status_code=404, content={"error": "Not found", "code": "not_found"})
        candidate = os.path.abspath(os.path.join(root, path))
        if path and candidate.startswith(root + os.sep) and os.path.isfile(candidate):
            return FileResponse(candidate)
        return FileResponse(index)


def create_app(
    session: Optional[ConsoleSession] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    settings = settings or get_settings()
    server = settings.server

    app = FastAPI(title="S3 Console Backend")
    app.state.session = session or ConsoleSession()
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=server.cors_origins,
        allow_credentials="*" not in server.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    # -----------------------------------------------------------------
    # Routers
    # -----------------------------------------------------------------
    app.include_router(health_router)
    app.include_router(connection_router, prefix=server.api_prefix)
    app.include_router(buckets_router, prefix=server.api_prefix)
    app.include_router(objects_router, prefix=server.api_prefix)
    app.include_router(preview_router, prefix=server.api_prefix)

    if server.static_dir:
        _mount_spa(app, server.static_dir, server.api_prefix)

    return app


app = create_app()


# ---------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------

def run() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=settings.server.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    log.info(
        "S3 console listening on %s:%s (driver=%s, api=%s)",
        settings.server.host,
        settings.server.port,
        settings.storage.driver,
        settings.server.api_prefix or "/",
    )
    uvicorn.run(
        app,
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.server.log_level.lower(),
    )


if __name__ == "__main__":
    run()
