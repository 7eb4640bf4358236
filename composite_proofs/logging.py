"""
composite_proofs.logging
------------------------

Structured logging for the proof system:
- JSON or concise colored text formats
- Context-local fields via `contextvars` (trace_id, spec, statement, phase)
- Safe JSON serialization (bytes -> hex, dataclasses -> dicts)
- Helpers to bind/unbind context fields and scope a trace id

Usage
-----
    from composite_proofs import logging as plog

    plog.configure(json=False, level="DEBUG")   # once, at process start
    with plog.trace_scope():
        plog.bind(spec=spec.digest().hex()[:16])
        proof = create_proof(spec, witnesses)

Library modules only call `logging.getLogger(__name__)`; they never configure
handlers. Secret material (witnesses, blindings) is never passed to a logger.
"""

from __future__ import annotations

import datetime as _dt
import io
import json
import logging
import os
import sys
import threading
import traceback
import types
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Union

_LOG_CONTEXT: ContextVar[Dict[str, Any]] = ContextVar("_LOG_CONTEXT", default={})

DEFAULT_CONTEXT_KEYS = ("trace_id", "spec", "statement", "phase", "component")

_RECORD_ATTRS = frozenset(
    (
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
    )
)


# ----------------------------
# Context
# ----------------------------


def context() -> Dict[str, Any]:
    """Return a *copy* of the active logging context."""
    return dict(_LOG_CONTEXT.get())


def bind(**fields: Any) -> None:
    """Merge fields into the active context."""
    cur = dict(_LOG_CONTEXT.get())
    cur.update({k: _coerce_value(v) for k, v in fields.items()})
    _LOG_CONTEXT.set(cur)


def unbind(*keys: str) -> None:
    cur = dict(_LOG_CONTEXT.get())
    for k in keys:
        cur.pop(k, None)
    _LOG_CONTEXT.set(cur)


def clear_context() -> None:
    _LOG_CONTEXT.set({})


def short_uuid() -> str:
    return uuid.uuid4().hex[:12]


@contextmanager
def trace_scope(trace_id: Optional[str] = None, **fields: Any) -> Iterator[str]:
    """
    Ensure a trace_id (and any extra fields) for the duration of the scope.
    Restores the prior context on exit.
    """
    prev = dict(_LOG_CONTEXT.get())
    tid = trace_id or prev.get("trace_id") or short_uuid()
    try:
        bind(trace_id=tid, **fields)
        yield tid
    finally:
        _LOG_CONTEXT.set(prev)


# ----------------------------
# Formatters
# ----------------------------


class _SafeJSONEncoder(json.JSONEncoder):
    def default(self, o: Any) -> Any:
        if isinstance(o, (bytes, bytearray)):
            return o.hex()
        if isinstance(o, Path):
            return str(o)
        if is_dataclass(o) and not isinstance(o, type):
            return asdict(o)
        return str(o)


def _utcnow_iso() -> str:
    return _dt.datetime.now(_dt.timezone.utc).isoformat(timespec="milliseconds")


def _coerce_value(v: Any) -> Any:
    if v is None or isinstance(v, (bool, int, float, str, list, dict)):
        return v
    if isinstance(v, (bytes, bytearray)):
        return v.hex()
    if isinstance(v, Path):
        return str(v)
    return str(v)


def _extras(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        k: _coerce_value(v)
        for k, v in record.__dict__.items()
        if not k.startswith("_") and k not in _RECORD_ATTRS
    }


_LEVEL_TO_INT = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
    "NOTSET": logging.NOTSET,
}

ANSI = types.SimpleNamespace(
    RESET="\x1b[0m",
    BOLD="\x1b[1m",
    RED="\x1b[31m",
    GREEN="\x1b[32m",
    YELLOW="\x1b[33m",
    MAGENTA="\x1b[35m",
    CYAN="\x1b[36m",
    GREY="\x1b[90m",
    WHITE="\x1b[37m",
)

_LEVEL_COLOR = {
    logging.DEBUG: ANSI.GREY,
    logging.INFO: ANSI.GREEN,
    logging.WARNING: ANSI.YELLOW,
    logging.ERROR: ANSI.RED,
    logging.CRITICAL: ANSI.BOLD + ANSI.MAGENTA,
}


def _supports_color(stream: Any) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty()) and os.environ.get("NO_COLOR") is None


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": _utcnow_iso(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "pid": os.getpid(),
            "tid": threading.get_ident(),
        }
        payload.update(context())
        for k, v in _extras(record).items():
            payload.setdefault(k, v)
        if record.exc_info:
            payload["err"] = "".join(traceback.format_exception(*record.exc_info)).rstrip()
        return json.dumps(payload, cls=_SafeJSONEncoder, separators=(",", ":"))


class TextFormatter(logging.Formatter):
    """
    Human-friendly one-liner:
      2026-01-05T12:34:56.789+00:00 | INFO  | composite_proofs.verifier | trace_id=ab12 | verified=True | proof verified
    """

    def __init__(self, stream: Any):
        super().__init__()
        self._color = _supports_color(stream)

    def format(self, record: logging.LogRecord) -> str:
        ctx = context()
        ctx_str = " ".join(f"{k}={ctx[k]}" for k in DEFAULT_CONTEXT_KEYS if ctx.get(k) is not None)
        extras = " ".join(f"{k}={v}" for k, v in _extras(record).items() if k not in ctx)

        lvl = f"{record.levelname:<5}"
        name = record.name
        ts = _utcnow_iso()
        if self._color:
            lvl = f"{_LEVEL_COLOR.get(record.levelno, ANSI.WHITE)}{lvl}{ANSI.RESET}"
            name = f"{ANSI.CYAN}{name}{ANSI.RESET}"
            ts = f"{ANSI.GREY}{ts}{ANSI.RESET}"

        line = f"{ts} | {lvl} | {name}"
        if ctx_str:
            line += f" | {ctx_str}"
        if extras:
            line += f" | {extras}"
        line += f" | {record.getMessage()}"
        if record.exc_info:
            line += "\n" + "".join(traceback.format_exception(*record.exc_info)).rstrip()
        return line


# ----------------------------
# Setup
# ----------------------------


def configure(
    *,
    json: Optional[bool] = None,
    level: Union[str, int] = "INFO",
    stream: Optional[io.TextIOBase] = None,
    file_path: Optional[Union[Path, str]] = None,
    logger_name: str = "composite_proofs",
) -> logging.Logger:
    """
    Attach a console handler (and optionally a JSON file handler) to the
    `composite_proofs` logger.

    json: None means COMPOSITE_PROOFS_LOG_FORMAT=(json|text), else text on a TTY.
    """
    stream = stream if stream is not None else sys.stderr
    chosen_json = _decide_json(json, stream)
    lvl = _coerce_level(level)

    logger = logging.getLogger(logger_name)
    logger.setLevel(lvl)
    for h in list(logger.handlers):
        logger.removeHandler(h)

    console = logging.StreamHandler(stream)
    console.setLevel(lvl)
    console.setFormatter(JSONFormatter() if chosen_json else TextFormatter(stream))
    logger.addHandler(console)

    if file_path:
        p = Path(file_path).expanduser()
        p.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(p, encoding="utf-8")
        fh.setLevel(lvl)
        fh.setFormatter(JSONFormatter())
        logger.addHandler(fh)
    return logger


def _coerce_level(level: Union[str, int]) -> int:
    if isinstance(level, int):
        return level
    return _LEVEL_TO_INT.get(level.upper(), logging.INFO)


def _decide_json(json_flag: Optional[bool], stream: Any) -> bool:
    if json_flag is not None:
        return json_flag
    env = os.environ.get("COMPOSITE_PROOFS_LOG_FORMAT", "").strip().lower()
    if env in ("json", "text"):
        return env == "json"
    return not _supports_color(stream)


__all__ = [
    "configure",
    "context",
    "bind",
    "unbind",
    "clear_context",
    "trace_scope",
    "short_uuid",
    "JSONFormatter",
    "TextFormatter",
]
