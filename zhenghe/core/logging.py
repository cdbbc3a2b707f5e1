# zhenghe/core/logging.py
from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

# Common formatter that includes the conversation id if present
FMT = "%(asctime)s | %(levelname)-8s | %(name)s | conv=%(conversation_id)s | %(message)s"

AREAS = [
    ("zhenghe.transport", "transport.log"),
    ("zhenghe.chat",      "chat.log"),
]

class _ContextFilter(logging.Filter):
    """
    Injects the conversation id into records if it was passed through
    `extra=` by the service or set manually on the filter.
    """
    def __init__(self, conversation_id: str | None = None):
        super().__init__()
        self.conversation_id = conversation_id

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "conversation_id"):
            record.conversation_id = self.conversation_id or "-"
        return True

def _make_file_handler(path: str, level: int) -> RotatingFileHandler:
    h = RotatingFileHandler(path, maxBytes=5_000_000, backupCount=3, encoding="utf-8")
    h.setLevel(level)
    h.setFormatter(logging.Formatter(FMT))
    h.addFilter(_ContextFilter())
    h._zhenghe = True  # type: ignore[attr-defined]
    return h

def _drop_own_handlers(logger: logging.Logger) -> None:
    for h in list(logger.handlers):
        if getattr(h, "_zhenghe", False):
            logger.removeHandler(h)
            h.close()

def setup_logging(debug: bool = False, log_dir: Optional[str] = None) -> None:
    """
    Configure root + per-area loggers. Safe to call more than once:
    handlers installed by a previous call are replaced, not duplicated.
    Files (only when log_dir is given):
      - zhenghe.log    (everything)
      - transport.log  (HTTP requests/responses)
      - chat.log       (conversation service)
    """
    level = logging.DEBUG if debug else logging.INFO
    logging.captureWarnings(True)

    root = logging.getLogger()
    root.setLevel(level)
    _drop_own_handlers(root)

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter(FMT))
    console.addFilter(_ContextFilter())
    console._zhenghe = True  # type: ignore[attr-defined]
    root.addHandler(console)

    if log_dir:
        log_dir = os.path.abspath(log_dir)
        os.makedirs(log_dir, exist_ok=True)
        root.addHandler(_make_file_handler(os.path.join(log_dir, "zhenghe.log"), level))

    # Per-area dedicated files
    for name, filename in AREAS:
        lg = logging.getLogger(name)
        lg.setLevel(level)
        lg.propagate = True   # still go to root handlers too
        _drop_own_handlers(lg)
        if log_dir:
            lg.addHandler(_make_file_handler(os.path.join(log_dir, filename), level))

def setup_logging_from_settings(app_settings=None) -> None:
    from zhenghe.core.config import settings as default_settings

    s = app_settings or default_settings
    setup_logging(debug=s.LOG_DEBUG, log_dir=s.LOG_DIR)

def clip(s: Optional[str], n: int = 240) -> str:
    if s is None:
        return ""
    return (s[:n] + "…") if len(s) > n else s
