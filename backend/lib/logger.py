"""
Backend Logging

Console logging for the API server:
- Colored level names and per-area icons (chat, videos, tasks, ...)
- Section banners around multi-step request handling
- Key/value rendering of request and response details
"""

import json
import logging
import sys
from datetime import datetime
from pprint import pformat
from typing import Any, Dict, Optional


class Colors:
    """ANSI escape codes."""
    RESET = '\033[0m'
    BOLD = '\033[1m'

    DEBUG = '\033[36m'
    INFO = '\033[32m'
    WARNING = '\033[33m'
    ERROR = '\033[31m'
    CRITICAL = '\033[35m'

    SECTION = '\033[94m'
    SUBSECTION = '\033[96m'
    KEY = '\033[93m'
    VALUE = '\033[92m'
    TIMESTAMP = '\033[90m'


LEVEL_COLORS = {
    'DEBUG': Colors.DEBUG,
    'INFO': Colors.INFO,
    'WARNING': Colors.WARNING,
    'ERROR': Colors.ERROR,
    'CRITICAL': Colors.CRITICAL,
}


class ColoredFormatter(logging.Formatter):
    """Single-line records: time, icon, level, logger name, message."""

    LEVEL_ICONS = {
        'DEBUG': '🔍',
        'INFO': 'ℹ️',
        'WARNING': '⚠️',
        'ERROR': '❌',
        'CRITICAL': '🚨',
    }

    # Keyed by the last component of the logger name
    AREA_ICONS = {
        'chat': '💬',
        'chat_service': '💬',
        'video_suggestions': '🎬',
        'videos': '🎬',
        'tasks': '🤖',
        'automation': '🤖',
        'quiz': '🧠',
        'summaries': '📝',
        'speech': '🎤',
        'session': '🎤',
        'main': '🚀',
    }

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors and sys.stdout.isatty()

    def _paint(self, text: str, color: str) -> str:
        return f"{color}{text}{Colors.RESET}" if self.use_colors else text

    def format(self, record: logging.LogRecord) -> str:
        area = record.name.rsplit('.', 1)[-1]
        icon = self.AREA_ICONS.get(area, self.LEVEL_ICONS.get(record.levelname, '•'))
        timestamp = datetime.fromtimestamp(record.created).strftime('%H:%M:%S.%f')[:-3]

        message = record.getMessage()
        stripped = message.strip()
        if stripped.startswith(('{', '[')):
            try:
                message = f"\n{pformat(json.loads(stripped), indent=2, width=100)}"
            except ValueError:
                pass

        line = (
            f"{self._paint(f'[{timestamp}]', Colors.TIMESTAMP)} "
            f"{icon} {self._paint(f'{record.levelname:8s}', LEVEL_COLORS.get(record.levelname, Colors.RESET))} "
            f"{self._paint(record.name, Colors.BOLD)} | {message}"
        )
        if record.exc_info:
            line += f"\n{self.formatException(record.exc_info)}"
        return line


class StructuredLogger:
    """Logger wrapper with banners and key/value payloads."""

    def __init__(self, name: str, logger: Optional[logging.Logger] = None):
        self.name = name
        self.logger = logger or logging.getLogger(name)

    def _format_data(self, data: Any, indent: int = 2) -> str:
        pad = ' ' * indent
        closing = ' ' * (indent - 2)
        if isinstance(data, dict):
            lines = [f"{pad}{key}: {self._format_data(value, indent + 2)}" for key, value in data.items()]
            return "{\n" + "\n".join(lines) + f"\n{closing}}}"
        if isinstance(data, list):
            shown = data[:3] if len(data) > 5 else data
            items = ",\n".join(f"{pad}{self._format_data(item, indent + 2)}" for item in shown)
            more = f",\n{pad}... ({len(data)} items total)" if len(data) > 5 else ""
            return f"[\n{items}{more}\n{closing}]"
        return str(data)

    def _banner(self, title: str, rule: str, color: str, data: Optional[Dict[str, Any]]) -> None:
        tty = sys.stdout.isatty()
        paint = (lambda s: f"{color}{s}{Colors.RESET}") if tty else (lambda s: s)
        print(f"\n{paint(rule)}")
        print(paint(title))
        if data:
            print(paint(self._format_data(data)))
        print(f"{paint(rule)}\n")

    def section(self, title: str, data: Optional[Dict[str, Any]] = None):
        """Print a top-level banner."""
        self._banner(f"📋 {title.upper()}", "=" * 80, Colors.SECTION, data)

    def subsection(self, title: str, data: Optional[Dict[str, Any]] = None):
        self._banner(f"  → {title}", "-" * 60, Colors.SUBSECTION, data)

    def _log(self, level: int, message: str, data: Optional[Dict[str, Any]] = None, **kwargs):
        if data:
            message = f"{message}\n{self._format_data(data)}"
        self.logger.log(level, message, **kwargs)

    def debug(self, message: str, data: Optional[Dict[str, Any]] = None):
        self._log(logging.DEBUG, message, data)

    def info(self, message: str, data: Optional[Dict[str, Any]] = None):
        self._log(logging.INFO, message, data)

    def warning(self, message: str, data: Optional[Dict[str, Any]] = None):
        self._log(logging.WARNING, message, data)

    def error(self, message: str, error: Optional[Exception] = None, data: Optional[Dict[str, Any]] = None):
        """Log an error, with the exception's type, text and traceback when given."""
        if error is not None:
            message = f"{message} Error: {type(error).__name__}: {error}"
        self._log(logging.ERROR, message, data, exc_info=error)

    def success(self, message: str, data: Optional[Dict[str, Any]] = None):
        self._log(logging.INFO, f"✅ {message}", data)

    def request(self, method: str, path: str, data: Optional[Dict[str, Any]] = None):
        """Log an incoming API request."""
        self._log(logging.INFO, f"📥 REQUEST: {method} {path}", data)

    def response(self, status: int, path: str, duration: Optional[float] = None, data: Optional[Dict[str, Any]] = None):
        details = {"duration_ms": f"{duration * 1000:.2f}"} if duration is not None else {}
        if data:
            details.update(data)
        self._log(logging.INFO, f"📤 RESPONSE: {status} {path}", details)


def setup_logging(level: int = logging.INFO, use_colors: bool = True) -> logging.Logger:
    """Install the colored console handler on the root logger."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(ColoredFormatter(use_colors=use_colors))
    root_logger.setLevel(level)
    root_logger.addHandler(handler)

    for noisy in ('asyncio', 'httpx', 'httpcore', 'openai', 'urllib3'):
        logging.getLogger(noisy).setLevel(logging.WARNING)
    return root_logger


def get_logger(name: str) -> StructuredLogger:
    return StructuredLogger(name, logging.getLogger(name))
