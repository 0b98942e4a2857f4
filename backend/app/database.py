from typing import Any, Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker

from app.config import get_settings

settings = get_settings()


def engine_options(url: str, *, echo: bool = False) -> dict[str, Any]:
    """Pool settings for the configured backend."""

    options: dict[str, Any] = {"echo": echo, "future": True}
    if make_url(url).get_backend_name() == "sqlite":
        options["connect_args"] = {"check_same_thread": False}
        return options
    # recycle below MySQL's wait_timeout
    options.update(pool_size=10, max_overflow=20, pool_pre_ping=True, pool_recycle=3600)
    return options


engine = create_engine(settings.database_url, **engine_options(settings.database_url, echo=settings.debug))
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
