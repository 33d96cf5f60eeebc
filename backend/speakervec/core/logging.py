"""Logging configuration for the backend."""
import logging
import sys
from typing import Optional

from speakervec.core.config import Settings


def setup_logging(settings: Optional[Settings] = None) -> None:
    """Configure application logging."""
    level = settings.log_level if settings is not None else "INFO"
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )


logger = logging.getLogger("speakervec")
