"""
core/logging.py -- Root logger setup shared by the HTTP and gRPC processes.

Every module logs through logging.getLogger("userbase.<area>"); this function
only decides where records go and how they look. LOG_FORMAT=json emits one
JSON object per line for log shippers; plain and detailed use the same
human-readable line format (detailed only changes what the request loggers
include, see api/main.py and rpc/interceptors.py).
"""

import json
import logging

from core.config import Settings

_PLAIN_FORMAT = "%(asctime)s %(levelname)-5s %(name)s %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class JsonFormatter(logging.Formatter):
    """Render a record as a single-line JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record, _DATE_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def configure_logging(settings: Settings) -> None:
    """Install a single stream handler on the root logger.

    force=True replaces handlers left behind by a previous call (uvicorn
    reloads, tests building several apps in one process).
    """
    handler = logging.StreamHandler()
    if settings.log_format == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(_PLAIN_FORMAT, datefmt=_DATE_FORMAT))
    logging.basicConfig(level=settings.log_level.upper(), handlers=[handler], force=True)
