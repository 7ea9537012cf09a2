"""
Logging for import runs: console output, a rotating log file beside the job
state, and an error-only log that collects every failed album and item.
"""
import json
import logging
import logging.handlers
from pathlib import Path
from typing import Any, Dict

LOG_MAX_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5

# Passed via ``extra`` by the coordinator and copied into JSON lines
CONTEXT_FIELDS = ('job_id', 'album_id', 'item_key')


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        str(path), maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT, encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(log_file: str = "import.log", level: str = "INFO",
                  enable_json: bool = False) -> None:
    """
    Configure the root logger for an import run.

    Replaces any handlers already installed, so calling it again (for a second
    job in the same process) does not duplicate output.

    Args:
        log_file: Main log file; ``<stem>_error<suffix>`` is written beside it
        level: Logging level name, any case
        enable_json: Write one JSON object per line instead of plain text
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    log_level = getattr(logging, level.upper(), logging.INFO)
    root_logger.setLevel(log_level)

    if enable_json:
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    error_path = log_path.with_name(f"{log_path.stem}_error{log_path.suffix}")

    root_logger.addHandler(_rotating_handler(log_path, log_level, formatter))
    root_logger.addHandler(_rotating_handler(error_path, logging.ERROR, formatter))

    # requests' connection pool is noisy at DEBUG
    logging.getLogger('urllib3').setLevel(max(log_level, logging.INFO))


class JsonFormatter(logging.Formatter):
    """One JSON object per record, with job and item context when present."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj: Dict[str, Any] = {
            'timestamp': self.formatTime(record, self.datefmt),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                log_obj[name] = value

        if record.exc_info:
            log_obj['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_obj, default=str)
