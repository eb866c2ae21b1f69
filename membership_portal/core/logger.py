import logging
import sys
from pathlib import Path
from membership_portal.core.config import settings

# Create logs directory
log_dir = Path("logs")
log_dir.mkdir(exist_ok=True)

ROOT_LOGGER_NAME = "membership_portal"


def _configure_root(log_file: str = "portal.log") -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(settings.LOG_LEVEL)

    # Module reloads must not stack duplicate handlers
    if not root.handlers:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

        # File Handler
        file_handler = logging.FileHandler(log_dir / log_file)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

        # Stream Handler (Console)
        stream_handler = logging.StreamHandler(sys.stdout)
        stream_handler.setFormatter(formatter)
        root.addHandler(stream_handler)
    return root


class Logger:
    """Thin wrapper over a child of the `membership_portal` logger; records carry the module name."""

    def __init__(self, name: str = ROOT_LOGGER_NAME):
        root = _configure_root()
        if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
            self.logger = logging.getLogger(name)
        else:
            self.logger = root.getChild(name)

    @property
    def name(self) -> str:
        return self.logger.name

    def info(self, msg: str):
        self.logger.info(msg)

    def error(self, msg: str):
        self.logger.error(msg)

    def warning(self, msg: str):
        self.logger.warning(msg)

    def debug(self, msg: str):
        self.logger.debug(msg)

    def exception(self, msg: str):
        self.logger.exception(msg)


def get_logger(name: str) -> Logger:
    return Logger(name)
