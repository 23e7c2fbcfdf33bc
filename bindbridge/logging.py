import datetime as _dt
import json
import logging as _logging
import os
import sys
from dataclasses import dataclass
from typing import Any, Dict, Optional

_LOGGER_NAMESPACE = "bindbridge"

_DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
_DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _standard_attrs() -> set[str]:
    record = _logging.makeLogRecord({})
    attrs = set(record.__dict__.keys())
    attrs.update({"message", "asctime"})
    return attrs


_STANDARD_ATTRS = _standard_attrs()

_COLOR_MAP = {
    _logging.DEBUG: "\033[36m",      # Cyan
    _logging.INFO: "\033[37m",       # Light gray
    _logging.WARNING: "\033[33m",    # Yellow
    _logging.ERROR: "\033[31m",      # Red
    _logging.CRITICAL: "\033[41m",   # Red background
}
_RESET = "\033[0m"


@dataclass
class LoggingState:
    log_dir: Optional[str]
    text_log_path: Optional[str]
    jsonl_log_path: Optional[str]
    console_level: int
    file_level: int
    jsonl_enabled: bool


_state: Optional[LoggingState] = None


def _parse_level(value: Optional[str], default: int) -> int:
    if value is None:
        return default
    if isinstance(value, int):
        return value
    value = value.upper()
    if value.isdigit():
        return int(value)
    level = _logging.getLevelName(value)
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {value}")
    return level


class _ColorFormatter(_logging.Formatter):
    def __init__(self, fmt: str, datefmt: Optional[str], use_color: bool) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.use_color = use_color

    def format(self, record: _logging.LogRecord) -> str:
        message = super().format(record)
        if self.use_color:
            color = _COLOR_MAP.get(record.levelno)
            if color:
                message = f"{color}{message}{_RESET}"
        return message


class _MaxLevelFilter(_logging.Filter):
    def __init__(self, max_level: int) -> None:
        super().__init__()
        self.max_level = max_level

    def filter(self, record: _logging.LogRecord) -> bool:
        return record.levelno <= self.max_level


class _JsonLinesFormatter(_logging.Formatter):
    def format(self, record: _logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": self.formatTime(record, _DEFAULT_DATEFMT),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "lineno": record.lineno,
            "func": record.funcName,
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS:
                try:
                    json.dumps({key: value})
                    payload[key] = value
                except TypeError:
                    payload[key] = repr(value)
        return json.dumps(payload, ensure_ascii=False)


def _timestamped_filename(pattern: str, timestamp_format: str) -> str:
    now = _dt.datetime.now().strftime(timestamp_format)
    try:
        return pattern.format(timestamp=now, pid=os.getpid())
    except KeyError:
        return pattern.format(timestamp=now)


def _resolve_log_dir(logging_cfg: Dict[str, Any], override: Optional[str]) -> Optional[str]:
    if override:
        return os.path.abspath(override)
    cfg_dir = logging_cfg.get("dir")
    if cfg_dir:
        return cfg_dir if os.path.isabs(cfg_dir) else os.path.abspath(cfg_dir)
    # Conversion runs are short; only log to disk when asked to.
    return None


def get_logger(name: Optional[str] = None) -> _logging.Logger:
    if name is None:
        return _logging.getLogger(_LOGGER_NAMESPACE)
    if name.startswith(_LOGGER_NAMESPACE):
        full_name = name
    else:
        full_name = f"{_LOGGER_NAMESPACE}.{name}"
    return _logging.getLogger(full_name)


def configure_logging(
    config: Dict[str, Any],
    *,
    console_level_override: Optional[str] = None,
    file_level_override: Optional[str] = None,
    log_dir_override: Optional[str] = None,
    disable_color: bool = False,
    console_to_stderr: bool = False,
    enable_jsonl_override: Optional[bool] = None,
    force_reconfigure: bool = False,
) -> LoggingState:
    global _state

    logging_cfg: Dict[str, Any] = config.get("logging", {}) if config else {}

    console_level = _parse_level(console_level_override, _parse_level(logging_cfg.get("console_level"), _logging.INFO))
    file_level = _parse_level(file_level_override, _parse_level(logging_cfg.get("file_level"), _logging.DEBUG))

    use_color = logging_cfg.get("color", True) and not disable_color
    timestamp_format = logging_cfg.get("timestamp_format", "%Y%m%dT%H%M%S")
    pattern = logging_cfg.get("filename_pattern", "bindbridge-{timestamp}.log")

    jsonl_enabled = enable_jsonl_override if enable_jsonl_override is not None else logging_cfg.get("jsonl", False)

    log_dir = _resolve_log_dir(logging_cfg, log_dir_override)
    text_log_path = None
    jsonl_log_path = None

    logger = get_logger()
    if logger.handlers and not force_reconfigure and _state is not None:
        return _state

    logger.handlers.clear()
    logger.setLevel(min(console_level, file_level) if log_dir else console_level)
    logger.propagate = False

    # stdout carries everything below ERROR, stderr the rest, unless stdout
    # is reserved for program output
    if not console_to_stderr:
        stdout_handler = _logging.StreamHandler(stream=sys.stdout)
        stdout_handler.setLevel(console_level)
        stdout_handler.addFilter(_MaxLevelFilter(_logging.ERROR - 1))
        stdout_handler.setFormatter(_ColorFormatter(_DEFAULT_FORMAT, _DEFAULT_DATEFMT, use_color and sys.stdout.isatty()))
        logger.addHandler(stdout_handler)

    stderr_handler = _logging.StreamHandler(stream=sys.stderr)
    stderr_handler.setLevel(console_level if console_to_stderr else max(console_level, _logging.ERROR))
    stderr_handler.setFormatter(_ColorFormatter(_DEFAULT_FORMAT, _DEFAULT_DATEFMT, use_color and sys.stderr.isatty()))
    logger.addHandler(stderr_handler)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        text_log_path = os.path.join(log_dir, _timestamped_filename(pattern, timestamp_format))
        file_handler = _logging.FileHandler(text_log_path, encoding="utf-8")
        file_handler.setLevel(file_level)
        file_handler.setFormatter(_logging.Formatter(_DEFAULT_FORMAT, _DEFAULT_DATEFMT))
        logger.addHandler(file_handler)

        if jsonl_enabled:
            jsonl_log_path = os.path.join(log_dir, _timestamped_filename(pattern.replace(".log", ".jsonl"), timestamp_format))
            json_handler = _logging.FileHandler(jsonl_log_path, encoding="utf-8")
            json_handler.setLevel(file_level)
            json_handler.setFormatter(_JsonLinesFormatter())
            logger.addHandler(json_handler)

    _state = LoggingState(
        log_dir=log_dir,
        text_log_path=text_log_path,
        jsonl_log_path=jsonl_log_path,
        console_level=console_level,
        file_level=file_level,
        jsonl_enabled=bool(jsonl_enabled),
    )

    return _state


def get_logging_state() -> Optional[LoggingState]:
    return _state


def is_configured() -> bool:
    logger = get_logger()
    return bool(logger.handlers)
