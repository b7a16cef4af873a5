from __future__ import annotations

import logging

from splitline.config import get_settings

_LOG_CONFIGURED = False
_QUIET_LOGGERS = ("sqlalchemy.engine", "urllib3.connectionpool")


def configure_logging(level: str | None = None) -> None:
    global _LOG_CONFIGURED
    if _LOG_CONFIGURED:
        return

    resolved = (level or get_settings().log_level).upper()
    logging.basicConfig(
        level=getattr(logging, resolved, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    # Driver chatter stays at WARNING unless the app itself runs at DEBUG.
    if resolved != "DEBUG":
        for name in _QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
    _LOG_CONFIGURED = True
