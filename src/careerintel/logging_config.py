from __future__ import annotations

import logging

from careerintel.config import get_settings


_LOG_CONFIGURED = False

# HTTP client chatter drowns out the report engine at INFO
_QUIET_LOGGERS = ("urllib3", "httpx", "httpcore", "openai")


def configure_logging(level: str | None = None) -> None:
    global _LOG_CONFIGURED
    if _LOG_CONFIGURED:
        return

    settings = get_settings()
    name = (level or settings.log_level).upper()
    logging.basicConfig(
        level=getattr(logging, name, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    if name != "DEBUG":
        for logger_name in _QUIET_LOGGERS:
            logging.getLogger(logger_name).setLevel(logging.WARNING)
    _LOG_CONFIGURED = True
