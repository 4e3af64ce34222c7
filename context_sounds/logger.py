import json
import logging
import os

from datetime import datetime, timezone

_LOGGER_CONFIGURED = False
_LOG_FILE_PATH = None

# Atributos extras aceitos via logger.info(..., extra={...})
_EXTRA_FIELDS = ("session", "sound")


class JsonFormatter(logging.Formatter):
    def format(self, record):
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
        }

        for field in _EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = value

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            log_entry["stack"] = record.stack_info

        return json.dumps(log_entry, ensure_ascii=False)


def _log_dir() -> str:
    env_dir = os.environ.get("CONTEXT_SOUNDS_LOG_DIR")
    if env_dir:
        return env_dir
    base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    return os.path.join(base_dir, "logs")


def _configure_root_logger():
    global _LOGGER_CONFIGURED
    global _LOG_FILE_PATH
    if _LOGGER_CONFIGURED:
        return

    level_name = os.environ.get("CONTEXT_SOUNDS_LOG_LEVEL", "DEBUG").upper()
    level = getattr(logging, level_name, logging.DEBUG)

    package_logger = logging.getLogger("context_sounds")
    if not package_logger.handlers:
        log_dir = _log_dir()
        os.makedirs(log_dir, exist_ok=True)

        timestamp = datetime.now().strftime("%Y_%m_%d_%H_%M_%S")
        _LOG_FILE_PATH = os.path.join(log_dir, f"context_sounds_{timestamp}.log")

        # Apenas arquivo de log - nenhum output no terminal
        file_handler = logging.FileHandler(_LOG_FILE_PATH, encoding="utf-8", mode="a")
        file_handler.setFormatter(JsonFormatter())
        file_handler.setLevel(level)

        package_logger.addHandler(file_handler)

    package_logger.setLevel(level)
    _LOGGER_CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    _configure_root_logger()
    if not name.startswith("context_sounds"):
        name = f"context_sounds.{name}"
    return logging.getLogger(name)


def get_current_log_file_path() -> str:
    _configure_root_logger()
    return _LOG_FILE_PATH
