from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from trucktrack.config.logging_config import setup_logging
from trucktrack.config.settings import (
    APP_NAME, APP_VERSION, CORS_ORIGINS, HOST, LOG_FILE, LOG_LEVEL, PORT, RELOAD, SECRET_KEY,
)
from trucktrack.routers import (
    admin, auth, bank, caisse, credits, dashboard, drivers, expenses, invoices,
    reports, settings, third_parties, trips, trucks,
)
from trucktrack.services.db_init import init_db
from trucktrack.services.errors import ConflictError, NotFoundError, PermissionDeniedError

logger = logging.getLogger(__name__)

API_PREFIX = "/api"

# ------------------------------------------------------------------------------
# App
# ------------------------------------------------------------------------------
app = FastAPI(title=APP_NAME, version=APP_VERSION)
app.add_middleware(SessionMiddleware, secret_key=SECRET_KEY, session_cookie="trucktrack_session")
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def _startup():
    setup_logging(LOG_LEVEL, LOG_FILE)
    init_db()
    logger.info("%s %s démarré", APP_NAME, APP_VERSION)


# ------------------------------------------------------------------------------
# Erreurs -> JSON {"ok": False, "error": ...}
# ------------------------------------------------------------------------------
def _error(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse({"ok": False, "error": str(exc)}, status_code=status_code)


@app.exception_handler(NotFoundError)
async def _not_found(request: Request, exc: NotFoundError):
    return _error(404, exc)


@app.exception_handler(ConflictError)
async def _conflict(request: Request, exc: ConflictError):
    logger.warning("Opération refusée: %s", exc)
    return _error(409, exc)


@app.exception_handler(ValueError)
async def _bad_request(request: Request, exc: ValueError):
    logger.warning("Requête invalide: %s", exc)
    return _error(400, exc)


@app.exception_handler(PermissionDeniedError)
async def _forbidden(request: Request, exc: PermissionDeniedError):
    return _error(403, exc)


# ------------------------------------------------------------------------------
# Routes
# ------------------------------------------------------------------------------
@app.get("/")
def root():
    return {"name": APP_NAME, "version": APP_VERSION, "api": API_PREFIX}


@app.get(f"{API_PREFIX}/health")
def health():
    return {"status": "ok"}


for module in (
    auth, dashboard, trucks, drivers, trips, expenses, invoices, third_parties,
    caisse, bank, credits, settings, admin, reports,
):
    app.include_router(module.router, prefix=API_PREFIX)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host=HOST, port=PORT, reload=RELOAD, log_level=LOG_LEVEL.lower())
