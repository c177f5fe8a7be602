"""Utility script to create the initial database schema."""
from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from .session import Base, get_engine
from . import models  # noqa: F401  # ensure models are imported for metadata

logger = logging.getLogger("usermgmt.db")


def create_all() -> None:
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    logger.info("Database schema ensured at %s", engine.url.render_as_string(hide_password=True))


if __name__ == "__main__":
    from usermgmt.core.config import get_settings
    from usermgmt.core.logging import configure_logging

    configure_logging(get_settings().log_level)
    try:
        create_all()
    except SQLAlchemyError as exc:
        raise SystemExit(f"Failed to create tables: {exc}") from exc
