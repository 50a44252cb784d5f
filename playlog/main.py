import logging.config
from pathlib import Path

import yaml
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from playlog.config import settings
from playlog.exception_handlers import register_exception_handlers, request_id_middleware
from playlog.models import WelcomeResponse
from playlog.routers import completion_logs, health, ownership, progress, sessions

API_VERSION = "0.1.0"

# Load logging configuration
log_config_path = Path(__file__).resolve().parent.parent / "logging.yaml"
try:
    with open(log_config_path, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}
        logging.config.dictConfig(config)
except FileNotFoundError:
    logging.basicConfig(level=logging.INFO)
except Exception as exc:  # pylint: disable=broad-exception-caught
    logging.basicConfig(level=logging.INFO)
    logging.getLogger(__name__).warning("Failed to load logging.yaml: %s", exc)


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Edition/DLC ownership, completion tracking and play sessions",
        version=API_VERSION,
        debug=settings.debug,
    )

    # Request ID middleware for tracing
    fastapi_app.middleware("http")(request_id_middleware)

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(fastapi_app)

    # Include versioned routers
    fastapi_app.include_router(health.router, prefix="/api/v1")
    fastapi_app.include_router(ownership.router, prefix="/api/v1")
    fastapi_app.include_router(completion_logs.router, prefix="/api/v1")
    fastapi_app.include_router(sessions.router, prefix="/api/v1")
    fastapi_app.include_router(progress.router, prefix="/api/v1")

    @fastapi_app.get("/", response_model=WelcomeResponse)
    def read_root():
        return WelcomeResponse(message=f"Welcome to {settings.app_name}", version=API_VERSION)

    return fastapi_app


app = create_app()
