"""Create all database tables for the Donation API."""

import logging

from .database import Base, engine
from . import models  # noqa: F401 - registers the mapped tables
from .logging import configure_logging

logger = logging.getLogger("donation_api.create_tables")


def create_tables() -> None:
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created", extra={"event_action": "create_tables"})


if __name__ == "__main__":
    configure_logging()
    create_tables()
