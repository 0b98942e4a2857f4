import logging
import logging.config
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.metrics import router as metrics_router
from app.api.routes import router as api_router
from app.config import get_settings
from app.errors import register_error_handlers
from workhub.realtime import EventBus

logger = logging.getLogger(__name__)


def build_logging_config(level: str) -> dict[str, Any]:
    """Console logging for the API; stream and bus activity gets its own logger."""

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
            }
        },
        "root": {"handlers": ["console"], "level": level},
        "loggers": {
            "workhub.realtime": {
                "handlers": ["console"],
                "level": level,
                "propagate": False,
            },
        },
    }


settings = get_settings()
logging.config.dictConfig(build_logging_config(settings.log_level))

app = FastAPI(title=settings.app_name, debug=settings.debug)
app.state.event_bus = EventBus()

app.add_middleware(
    CORSMiddleware,
    allow_origins=[str(origin).rstrip("/") for origin in settings.cors_origins],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)


@app.on_event("shutdown")
async def _close_streams() -> None:
    closed = app.state.event_bus.close_all()
    logger.info("Shutdown closed %d open chat streams", closed)


@app.get("/health", tags=["system"])
def health_check() -> dict[str, str]:
    return {"status": "ok", "environment": settings.environment}


app.include_router(api_router, prefix="/api")
app.include_router(metrics_router)
