import logging
import json
import os
import threading
from pathlib import Path


class SingletonLogger:
    """
    Singleton logger that ensures only one logger instance is created per application run.

    Child loggers ("workshop.routes.jobs", ...) propagate to the single
    configured "workshop" root, so handlers are attached exactly once.
    """
    _instance = None
    _lock = threading.Lock()
    _root = None

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(SingletonLogger, cls).__new__(cls)
        return cls._instance

    def get_logger(self, name: str = "workshop") -> logging.Logger:
        """
        Get a logger under the "workshop" hierarchy.

        Args:
            name (str): Dotted logger name; names outside "workshop" are nested under it

        Returns:
            logging.Logger: Logger sharing the singleton handlers
        """
        if self._root is None:
            with self._lock:
                if self._root is None:
                    self._root = self._create_logger()

        if name == "workshop":
            return self._root
        if not name.startswith("workshop."):
            name = f"workshop.{name}"
        return logging.getLogger(name)

    def _create_logger(self) -> logging.Logger:
        """
        Create the root "workshop" logger with file and console handlers.

        Returns:
            logging.Logger: Configured logger instance
        """
        logger = logging.getLogger("workshop")
        logger.setLevel(getattr(logging, os.environ.get('LOG_LEVEL', 'DEBUG').upper(), logging.DEBUG))
        logger.propagate = False
        logger.handlers.clear()

        formatter = JsonFormatter({
            "timestamp": "asctime",
            "level": "levelname",
            "logger": "name",
            "module": "module",
            "function": "funcName",
            "line": "lineno",
            "message": "message"
        })

        logs_dir = Path(os.environ.get('LOG_DIR', 'logs'))
        logs_dir.mkdir(parents=True, exist_ok=True)

        # Fixed filenames, cleared on each run
        file_handler = logging.FileHandler(logs_dir / "workshop.log", mode='w', encoding='utf-8')
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

        error_file_handler = logging.FileHandler(logs_dir / "errors.log", mode='w', encoding='utf-8')
        error_file_handler.setLevel(logging.ERROR)
        error_file_handler.setFormatter(formatter)
        logger.addHandler(error_file_handler)

        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

        return logger


class JsonFormatter(logging.Formatter):
    """
    Formatter that outputs JSON strings after parsing the LogRecord.

    @param dict fmt_dict: Key: logging format attribute pairs. Defaults to {"message": "message"}.
    @param str time_format: time.strftime() format string. Default: "%Y-%m-%dT%H:%M:%S"
    @param str msec_format: Microsecond formatting. Appended at the end. Default: "%s.%03dZ"
    """
    def __init__(self, fmt_dict: dict = None, time_format: str = "%Y-%m-%dT%H:%M:%S", msec_format: str = "%s.%03dZ"):
        super().__init__()
        self.fmt_dict = fmt_dict if fmt_dict is not None else {"message": "message"}
        self.default_time_format = time_format
        self.default_msec_format = msec_format
        self.datefmt = None

    def usesTime(self) -> bool:
        return "asctime" in self.fmt_dict.values()

    def formatMessage(self, record) -> dict:
        """Return a dictionary of the configured LogRecord attributes."""
        return {fmt_key: record.__dict__[fmt_val] for fmt_key, fmt_val in self.fmt_dict.items()}

    def format(self, record) -> str:
        record.message = record.getMessage()

        if self.usesTime():
            record.asctime = self.formatTime(record, self.datefmt)

        message_dict = self.formatMessage(record)

        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)

        if record.exc_text:
            message_dict["exc_info"] = record.exc_text

        if record.stack_info:
            message_dict["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(message_dict, default=str)


def get_logger(name: str = "workshop") -> logging.Logger:
    """
    Get a logger backed by the singleton "workshop" configuration.

    Args:
        name (str): Logger name, e.g. "workshop.routes.jobs"

    Returns:
        logging.Logger
    """
    return SingletonLogger().get_logger(name)
