# src/sittr/main.py
"""
Sittr maintenance service.

Run with:
    uvicorn src.sittr.main:app
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv()

from .api.cron import router as cron_router
from .api.responses import APIException, api_exception_for
from .core.container import container
from .core.errors import SittrError
from .services.scheduler import init_scheduler, shutdown_scheduler

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s"


def configure_logging(level: str):
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    logging.getLogger().setLevel(level.upper())


app = FastAPI(title="Sittr Maintenance Scheduler")


@app.on_event("startup")
def startup():
    config = container.config()
    configure_logging(config.log_level)
    logger.info(f"Starting maintenance service ({config.environment})")
    init_scheduler(config)


@app.on_event("shutdown")
def shutdown():
    shutdown_scheduler()


# -------------------------
# Error Handlers
# -------------------------

@app.exception_handler(APIException)
async def handle_api_exception(request: Request, exc: APIException):
    return exc.to_response()


@app.exception_handler(SittrError)
async def handle_service_error(request: Request, exc: SittrError):
    api_exc = api_exception_for(exc)
    if api_exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return api_exc.to_response()


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return api_exception_for(exc).to_response()


# -------------------------
# Routes
# -------------------------

@app.get("/health")
def health():
    return JSONResponse({"status": "ok"})


app.include_router(cron_router)
