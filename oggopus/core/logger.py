# logger.py
import json
import logging
import logging.config
import os
import pathlib
from typing import Any, Dict, Optional

from oggopus.core.config import Config

LOGGER_NAME: str = "oggopus"

def get_logger() -> logging.Logger:
    return logging.getLogger(LOGGER_NAME)

def setup_logging(config: Optional[Config] = None) -> logging.Logger:
    """Configure logging from the JSON dictConfig file named by the config.

    The library never calls this itself; applications embedding the parser do.
    """
    config = config or Config.get()
    logger = logging.getLogger(LOGGER_NAME)

    log_directory: pathlib.Path = config.LOG_DIRECTORY
    if not os.path.exists(log_directory):
        os.makedirs(log_directory)

    config_file: pathlib.Path = pathlib.Path(config.LOG_CONFIG_FILE)
    with open(config_file) as f_in:
        logging_config: Dict[str, Any] = json.load(f_in)

    # file handlers are relative to the configured log directory
    for handler in logging_config.get("handlers", {}).values():
        if "filename" in handler:
            handler["filename"] = str(log_directory / pathlib.Path(handler["filename"]).name)

    logging.config.dictConfig(logging_config)
    logger.setLevel(config.LOG_LEVEL)

    return logger


LOG_RECORD_BUILTIN_ATTRS: set[str] = {
    "args",
    "asctime",
    "created",
    "exc_info",
    "exc_text",
    "extra",
    "filename",
    "funcName",
    "levelname",
    "levelno",
    "lineno",
    "module",
    "msecs",
    "message",
    "msg",
    "name",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "stack_info",
    "thread",
    "threadName",
    "taskName",
}

def truncate_dict(d: Any, max_length: int = 0) -> Any:
    if isinstance(d, dict):
        return {key: truncate_dict(value, max_length) for key, value in d.items()}
    elif isinstance(d, (list, tuple, set)):
        return type(d)(truncate_dict(item, max_length) for item in d)
    else:
        return truncate_value(d, max_length)

def truncate_value(value: Any, max_length: int = 0) -> Any:
    if isinstance(value, BaseException):
        return str(value)
    elif isinstance(value, (bytes, bytearray)):
        # raw payloads are logged by size only
        return f"<{len(value)} bytes>"
    elif isinstance(value, (int, float, bool)) or value is None:
        return value
    else:
        value_str: str = str(value)
        if max_length > 0 and len(value_str) > max_length:
            return value_str[:max_length] + '...'
        return value_str

class JSONFormatter(logging.Formatter):
    def __init__(
        self,
        datefmt: str = '%Y-%m-%dT%H:%M:%S%z',
        max_length: int = 0,
        fmt_keys: Optional[Dict[str, str]] = None,
        *args: Any,
        **kwargs: Any
    ) -> None:
        super().__init__(*args, **kwargs)
        self.datefmt: str = datefmt
        self.max_length: int = max_length
        self.fmt_keys: Dict[str, str] = fmt_keys or {}

        for key, value in self.fmt_keys.items():
            if value not in LOG_RECORD_BUILTIN_ATTRS:
                raise ValueError(f"Invalid value '{value}' for key '{key}' in fmt_keys")

    def format(self, record: logging.LogRecord) -> str:
        log_record: Dict[str, Any] = {}

        for key, value in self.fmt_keys.items():
            if value == 'asctime':
                log_record[key] = self.formatTime(record, self.datefmt)
            elif value == 'message':
                log_record[key] = record.getMessage()
            elif value == 'exc_info':
                log_record[key] = self.formatException(record.exc_info) if record.exc_info else None
            else:
                log_record[key] = getattr(record, value, None)

        # everything passed through ``extra=`` ends up under one key
        if 'extra' in self.fmt_keys.values():
            extra: Dict[str, Any] = {
                key: value for key, value in record.__dict__.items()
                if key not in LOG_RECORD_BUILTIN_ATTRS and not key.startswith('_')
            }
            if extra:
                log_record['extra'] = extra

        truncated: Dict[str, Any] = truncate_dict(log_record, self.max_length)
        return json.dumps(truncated, default=str)

class SimpleJSONFormatter(logging.Formatter):
    def __init__(self, max_length: int = 64, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.max_length: int = max_length

    def format(self, record: logging.LogRecord) -> str:
        log_record: Dict[str, Any] = {"level": record.levelname, "message": record.getMessage()}

        extra: Dict[str, Any] = {
            key: value for key, value in record.__dict__.items()
            if key not in LOG_RECORD_BUILTIN_ATTRS and not key.startswith('_')
        }
        if extra:
            log_record["extra"] = extra

        log_record = truncate_dict(log_record, self.max_length)

        return json.dumps(log_record, default=str)
