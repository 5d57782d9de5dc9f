import logging

from img2prompt.db.base import Base
from img2prompt.db.session import get_engine

# Register models on Base.metadata
from img2prompt.models import AsyncTask  # noqa: F401

logger = logging.getLogger(__name__)


def init_db() -> None:
    """Create database tables if they don't exist."""
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ensured: %s", list(Base.metadata.tables))
