"""Loguru logging configuration.

Every record carries a ``job_id`` extra: background seeding tasks run
inside ``logger.contextualize(job_id=...)`` so their lines can be followed
per job; everything else logs ``job=-``. A JSON sink is enabled for records
bound with ``json_output=True`` and, when ``log_dir`` is set, a rotating
file sink is added.
"""

import sys
from pathlib import Path

from loguru import logger

_LOG_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | job={extra[job_id]} | {name}:{function}:{line} | {message}"
)
_LOG_FILE = "sports-sync.log"


def setup_logging(log_level: str = "INFO", log_dir: str | None = None) -> None:
    """Replace loguru's default sink with the application sinks.

    Args:
        log_level: Minimum log level to emit.
        log_dir: Optional directory for ``sports-sync.log``, rotated every
            24 hours and retained 7 days.
    """
    level = log_level.upper()
    logger.remove()
    logger.configure(extra={"job_id": "-"})
    logger.add(sys.stderr, level=level, format=_LOG_FORMAT)
    logger.add(
        sys.stderr,
        level=level,
        serialize=True,
        filter=lambda record: bool(record["extra"].get("json_output")),
    )

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        logger.add(log_path / _LOG_FILE, level=level, format=_LOG_FORMAT, rotation="24h", retention="7 days")
