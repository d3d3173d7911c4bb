from __future__ import annotations

import json
import logging
import sys
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Final, Literal, Protocol, TypedDict, runtime_checkable

from .config import LoggingConfig

_LOGGER_NAME: Final[str] = "digit_recognizer"
_INT_FIELDS: Final[frozenset[str]] = frozenset(
    {"latency_ms", "digit", "threads", "width", "height"}
)
_FLOAT_FIELDS: Final[frozenset[str]] = frozenset({"confidence"})
_STR_FIELDS: Final[tuple[str, ...]] = ("model_id", "device", "reason")


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "ts": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        extra = _parse_evt_fields(record.getMessage())
        if extra:
            if "event" in extra:
                payload["message"] = str(extra.pop("event"))
            for k, v in extra.items():
                payload[k] = v
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


class _ConsoleFormatter(logging.Formatter):
    """Colorized single-line formatter for interactive terminals.

    Renders ``[HH:MM:SS] [LEVEL] event key=value ...`` with the event name
    emphasized and values colored by a simple type heuristic.
    """

    _RESET = "\x1b[0m"
    _BOLD = "\x1b[1m"
    _DIM = "\x1b[2m"
    _FG_GRAY = "\x1b[90m"
    _FG_RED = "\x1b[91m"
    _FG_GREEN = "\x1b[92m"
    _FG_YELLOW = "\x1b[93m"
    _FG_BLUE_BRIGHT = "\x1b[94m"
    _FG_MAGENTA = "\x1b[95m"
    _FG_CYAN = "\x1b[36m"
    _FG_WHITE = "\x1b[97m"

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.now(UTC).strftime("%H:%M:%S")
        lvl_tag = self._level_tag(record.levelno)
        event, kv_pairs, tail = self._split_message(record.getMessage())

        parts: list[str] = [f"{self._DIM}[{ts}]{self._RESET}", lvl_tag]
        if record.name and record.name != _LOGGER_NAME:
            parts.append(f"{self._DIM}{self._FG_GRAY}{record.name}{self._RESET}")
        if event:
            parts.append(f"{self._BOLD}{self._FG_BLUE_BRIGHT}{event}{self._RESET}")
        for k, v in kv_pairs:
            parts.append(f"{self._DIM}{self._FG_CYAN}{k}{self._RESET}={self._color_value(k, v)}")
        if tail:
            parts.append(tail)
        if record.exc_info:
            exc = self.formatException(record.exc_info)
            parts.append(f"\n{self._FG_RED}{exc}{self._RESET}")
        return " ".join(parts)

    def _level_tag(self, level: int) -> str:
        if level >= logging.CRITICAL:
            c = self._FG_MAGENTA
            name = "CRIT"
        elif level >= logging.ERROR:
            c = self._FG_RED
            name = "ERROR"
        elif level >= logging.WARNING:
            c = self._FG_YELLOW
            name = "WARN"
        elif level >= logging.INFO:
            c = self._FG_CYAN
            name = "INFO"
        else:
            c = self._FG_GRAY
            name = "DEBUG"
        return f"{self._BOLD}{c}[{name}]{self._RESET}"

    def _split_message(self, msg: str) -> tuple[str | None, list[tuple[str, str]], str | None]:
        if msg.startswith("EVT "):
            extra = _parse_evt_fields(msg)
            evt_name = str(extra.pop("event")) if "event" in extra else "event"
            return evt_name, [(k, str(v)) for k, v in extra.items()], None

        toks = msg.split()
        if not toks:
            return None, [], None

        event: str | None = None
        rest = toks
        if "=" not in toks[0]:
            event = toks[0]
            rest = toks[1:]

        kv: list[tuple[str, str]] = []
        tail_parts: list[str] = []
        for t in rest:
            k, sep, v = t.partition("=")
            if sep and k.strip():
                kv.append((k.strip(), v))
            else:
                tail_parts.append(t)
        tail = " ".join(tail_parts) if tail_parts else None
        return event, kv, tail

    def _color_value(self, key: str, v: str) -> str:
        ks = key.lower()
        vs = v.strip()
        if ks.endswith("_ms") or ks.endswith("_s"):
            return f"{self._FG_MAGENTA}{vs}{self._RESET}"
        if vs.lower() in {"true", "false"}:
            return f"{self._FG_CYAN}{vs}{self._RESET}"
        if _is_float_str(vs) or vs.lstrip("-").isdigit():
            return f"{self._FG_GREEN}{vs}{self._RESET}"
        return f"{self._FG_WHITE}{vs}{self._RESET}"


class LogEvent(TypedDict, total=False):
    latency_ms: int
    digit: int
    confidence: float
    model_id: str
    device: str
    threads: int
    reason: str
    width: int
    height: int


def log_event(event: str, fields: LogEvent | None = None, *, level: int = logging.INFO) -> None:
    parts: list[str] = [f"event={event}"]
    if fields is not None:
        # Values are re-checked: callers may hand in decoded, untyped data
        data: Mapping[str, object] = fields
        for key in sorted(_INT_FIELDS):
            val = data.get(key)
            if isinstance(val, int) and not isinstance(val, bool):
                parts.append(f"{key}={val}")
        conf = data.get("confidence")
        if isinstance(conf, float):
            parts.append(f"confidence={conf:.4f}")
        for key in _STR_FIELDS:
            val = data.get(key)
            if isinstance(val, str) and val:
                # Values must not contain spaces for the EVT parser
                parts.append(f"{key}={val.replace(' ', '_')}")
    get_logger().log(level, "EVT " + " ".join(parts))


def _parse_evt_fields(msg: str) -> dict[str, object]:
    if not msg.startswith("EVT "):
        return {}
    out: dict[str, object] = {}
    for tok in msg[4:].split():
        k, sep, v = tok.partition("=")
        key = k.strip()
        if not sep or not key:
            continue
        val: object = v
        if key in _INT_FIELDS and v.lstrip("-").isdigit():
            val = int(v)
        elif key in _FLOAT_FIELDS and _is_float_str(v):
            val = float(v)
        out[key] = val
    return out


def _is_float_str(s: str) -> bool:
    body = s[1:] if s.startswith("-") else s
    if not body:
        return False
    return body.count(".") <= 1 and body.replace(".", "", 1).isdigit()


LogStyle = Literal["json", "pretty", "auto"]


def _level_from_name(name: str) -> int:
    return {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }.get(name.strip().upper(), logging.INFO)


def init_logging(style: LogStyle = "auto", level: str = "INFO") -> logging.Logger:
    """Initialize or refresh the package logger.

    Re-binds to the current ``sys.stdout`` on every call so replaced streams
    (pytest capture, embedding shells) are honored, and keeps exactly one
    StreamHandler attached.
    """
    logger = logging.getLogger(_LOGGER_NAME)
    lvl = _level_from_name(level)
    logger.setLevel(lvl)
    logger.propagate = False

    for h in list(logger.handlers):
        if isinstance(h, logging.StreamHandler):
            logger.removeHandler(h)

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(_choose_formatter(style))
    handler.setLevel(lvl)
    logger.addHandler(handler)
    return logger


def get_logger() -> logging.Logger:
    return logging.getLogger(_LOGGER_NAME)


def _choose_formatter(style: LogStyle = "auto") -> logging.Formatter:
    if style == "json":
        return _JsonFormatter()
    if style == "pretty":
        return _ConsoleFormatter()

    @runtime_checkable
    class _HasIsatty(Protocol):
        def isatty(self) -> bool: ...

    out_stream = sys.stdout
    is_tty = isinstance(out_stream, _HasIsatty) and bool(out_stream.isatty())
    return _ConsoleFormatter() if is_tty else _JsonFormatter()


def _style_from_name(name: str) -> LogStyle:
    s = name.strip().lower()
    if s == "json":
        return "json"
    if s == "pretty":
        return "pretty"
    return "auto"


def init_logging_from(cfg: LoggingConfig) -> logging.Logger:
    """Apply a loaded ``[logging]`` table to the package logger."""
    return init_logging(_style_from_name(cfg.style), cfg.level)
