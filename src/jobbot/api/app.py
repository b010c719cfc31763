from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from jobbot.api.routes import router as api_router
from jobbot.config import Settings, get_settings
from jobbot.core.email_monitor import EmailMonitor
from jobbot.core.scanner import JobScanner
from jobbot.db.init import ensure_data_directories
from jobbot.db.session import Database
from jobbot.errors import StorageError, ValidationError


def create_app(
    database: Database | None = None,
    *,
    settings: Settings | None = None,
    run_scanner: bool = False,
) -> FastAPI:
    settings = settings or get_settings()
    owns_database = database is None
    database = database or Database(settings.database_url)

    app = FastAPI(title=settings.app_name)
    app.state.settings = settings
    app.state.database = database
    app.state.email_monitor = EmailMonitor(database, settings=settings)
    app.state.scanner = JobScanner(database, settings=settings)

    @app.on_event("startup")
    def _startup() -> None:
        if owns_database:
            ensure_data_directories(settings)
        database.open()
        app.state.email_monitor.start()
        if run_scanner:
            app.state.scanner.start()

    @app.on_event("shutdown")
    def _shutdown() -> None:
        app.state.scanner.stop()
        app.state.email_monitor.stop()
        if owns_database:
            database.close()

    @app.exception_handler(ValidationError)
    def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse({"detail": str(exc)}, status_code=422)

    @app.exception_handler(StorageError)
    def _storage_error(request: Request, exc: StorageError) -> JSONResponse:
        return JSONResponse({"detail": str(exc)}, status_code=500)

    @app.get("/health")
    def health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    app.include_router(api_router)
    return app
