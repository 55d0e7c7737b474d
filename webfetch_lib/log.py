from __future__ import annotations

import logging
import sys
from pathlib import Path

ROOT_LOGGER = "webfetch"
_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(*, level: str = "INFO", log_path: str | None = None) -> logging.Logger:
    """Attach stderr (and optionally file) handlers to the ``webfetch`` logger.

    Safe to call more than once; handlers are only installed the first time.
    """

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    if logger.handlers:
        return logger

    formatter = logging.Formatter(_FORMAT)
    handlers: list[logging.Handler] = []

    file_handler_error: Exception | None = None
    if log_path:
        path = Path(log_path).expanduser()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(path, encoding="utf-8")
        except OSError as exc:
            file_handler_error = exc
        else:
            file_handler.setFormatter(formatter)
            handlers.append(file_handler)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    handlers.append(stream_handler)

    for handler in handlers:
        logger.addHandler(handler)
    logger.propagate = False

    if file_handler_error:
        logger.warning(
            "Falling back to stderr logging because %s could not be opened: %s",
            log_path,
            file_handler_error,
        )
    return logger
