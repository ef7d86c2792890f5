from __future__ import annotations

import logging
import os
from typing import Optional


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
LOG_LEVEL_ENV = "EV_LOG_LEVEL"


def configure_logging(level: Optional[str] = None) -> None:
    level = (level or os.getenv(LOG_LEVEL_ENV) or "INFO").upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)
