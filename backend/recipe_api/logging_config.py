import logging
import logging.handlers
import sys
from pathlib import Path

from pythonjsonlogger.json import JsonFormatter

from recipe_api.config import settings

SERVICE_NAME = "recipe-api"

# Chatty libraries kept at WARNING regardless of the app log level
QUIET_LOGGERS = ('urllib3', 'httpx', 'httpcore', 'yt_dlp', 'sqlalchemy.engine', 'asyncio')


def _build_formatter() -> logging.Formatter:
    if settings.log_format == 'json':
        return JsonFormatter(
            '%(asctime)s %(levelname)s %(name)s %(message)s %(funcName)s %(lineno)d',
            rename_fields={'levelname': 'level', 'asctime': 'timestamp'},
            static_fields={'service': SERVICE_NAME},
            datefmt='%Y-%m-%dT%H:%M:%S'
        )
    return logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def setup_logging() -> None:
    """
    Configure the root logger from settings.

    Console output always; a rotating file (10MB x 5) when ENABLE_LOG_ROTATION is set.
    Background pipelines log through the same handlers, tagged with video_id/recipe_id extras.
    """
    level = getattr(logging, settings.log_level)
    formatter = _build_formatter()

    root = logging.getLogger()
    root.setLevel(level)
    # Reconfiguring (e.g. uvicorn reload) must not stack handlers
    root.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    if settings.enable_log_rotation:
        log_path = Path(settings.log_file_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root.info(
        "Logging configured",
        extra={
            "log_level": settings.log_level,
            "log_format": settings.log_format,
            "rotation": settings.enable_log_rotation
        }
    )
