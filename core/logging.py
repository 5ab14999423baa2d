import logging
import sys

from core.config import settings


def setup_logging() -> logging.Logger:
    """Configure root handler once and return the application logger"""
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s [%(name)s] %(message)s"
        ))
        root.addHandler(handler)
    root.setLevel(logging.DEBUG if settings.debug else logging.INFO)

    # SQL echo is controlled by the engine, keep the noise down here
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    return logging.getLogger("tournament_platform")


logger = setup_logging()
