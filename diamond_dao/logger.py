"""
Diamond DAO Logging
===================

Process-wide logging setup shared by the library and the CLI. Console output
goes through a themed ``rich`` handler on stderr; an optional rotating file
under ``logs/`` receives the same records.

Usage:
    >>> from diamond_dao.logger import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Proposal #1 created")
"""

import logging
import logging.handlers
import re
import sys
import threading
import time
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.highlighter import RegexHighlighter
from rich.logging import RichHandler
from rich.theme import Theme

from .constants import (
    LOG_LEVEL,
    LOG_FORMAT,
    LOG_DATE_FORMAT,
    LOG_MAX_FILE_SIZE,
    LOG_BACKUP_COUNT,
    LOG_CONSOLE_HIGHLIGHTING,
    LOG_FILE_OUTPUT,
)


PROJECT_ROOT = Path(__file__).parent.parent
LOG_FILE_PATH = PROJECT_ROOT / "logs" / "diamond_dao.log"

DAO_THEME = Theme(
    {
        "dao.address":          "cyan",
        "dao.arrow":            "bold yellow",
        "dao.level_critical":   "bold red reverse",
        "dao.level_debug":      "bold dim",
        "dao.level_error":      "bold red",
        "dao.level_info":       "bold green",
        "dao.level_warning":    "bold yellow",
        "dao.logger_name":      "magenta",
        "dao.proposal":         "bold white",
        "dao.selector":         "bold blue",
        "dao.status_executed":  "bold green",
        "dao.status_failed":    "bold red",
        "dao.status_pending":   "bold yellow",
        "dao.tag":              "bold magenta",
        "dao.timestamp":        "bold cyan",
    }
)

# "(name)x" specifiers that survived formatting mean a '%' was missing
_UNRESOLVED_SPECIFIER = re.compile(r"\([a-zA-Z_]\w*\)[a-zA-Z]")
_STRFTIME_DIRECTIVE = re.compile(r"%[EO]?[-_0^#]*[A-Za-z]")


def _fallback_warning(message: str) -> None:
    stamp = time.strftime(str(LOG_DATE_FORMAT.default()))
    print(f"{stamp} - diamond_dao.logger - {message}", file=sys.stderr)


class LogManager:
    """
    Singleton owner of the root logger configuration.

    ``configure`` installs the handlers once; later calls are ignored unless
    ``force`` is set, which is how the CLI applies the level from its config.
    """

    _instance: Optional["LogManager"] = None
    _lock: threading.Lock = threading.Lock()

    def __new__(cls) -> "LogManager":
        with cls._lock:
            if cls._instance is None:
                instance = super().__new__(cls)
                instance._configured = False
                cls._instance = instance
        return cls._instance

    # ── Format checks ─────────────────────────────────────────────────

    @staticmethod
    def validate_log_format(log_format: str) -> str:
        """Return *log_format* if it renders a record cleanly, else the default."""
        if not log_format:
            return str(LOG_FORMAT.default())
        log_format = str(log_format)
        sample = logging.LogRecord("sample", logging.INFO, "", 0, "sample", (), None)
        try:
            rendered = logging.Formatter(fmt=log_format).format(sample)
        except (ValueError, KeyError, TypeError) as e:
            _fallback_warning(f"Bad LOG_FORMAT ({e}), using default")
            return str(LOG_FORMAT.default())
        if _UNRESOLVED_SPECIFIER.search(rendered):
            _fallback_warning("LOG_FORMAT has specifiers without '%', using default")
            return str(LOG_FORMAT.default())
        return log_format

    @staticmethod
    def validate_date_format(date_format: str) -> str:
        """Return *date_format* if it contains a strftime directive, else the default."""
        if not date_format:
            return str(LOG_DATE_FORMAT.default())
        date_format = str(date_format)
        if not _STRFTIME_DIRECTIVE.search(date_format):
            _fallback_warning("LOG_DATE_FORMAT has no strftime directive, using default")
            return str(LOG_DATE_FORMAT.default())
        return date_format

    # ── Setup ─────────────────────────────────────────────────────────

    def configure(
        self,
        log_level: Optional[str] = None,
        log_file: Optional[Path] = None,
        console_output: bool = True,
        file_output: Optional[bool] = None,
        force: bool = False,
    ) -> None:
        """
        Install console and file handlers on the root logger.

        Args:
            log_level: Level name; unknown names fall back to INFO. Defaults to LOG_LEVEL.
            log_file: Rotating log file path. Defaults to logs/diamond_dao.log.
            console_output: Attach the stderr handler.
            file_output: Attach the file handler. Defaults to LOG_FILE_OUTPUT.
            force: Replace an existing configuration.
        """
        with self._lock:
            if self._configured and not force:
                return

            level = getattr(logging, str(log_level or LOG_LEVEL).upper(), None)
            if not isinstance(level, int):
                level = logging.INFO

            formatter = TerminalSafeFormatter(
                fmt=self.validate_log_format(LOG_FORMAT),
                datefmt=self.validate_date_format(LOG_DATE_FORMAT) + " UTC",
            )
            formatter.converter = time.gmtime

            root = logging.getLogger()
            root.setLevel(level)
            root.handlers.clear()

            handlers = []
            if console_output:
                handlers.append(self._console_handler())
            if file_output if file_output is not None else bool(LOG_FILE_OUTPUT):
                handlers.append(self._file_handler(log_file or LOG_FILE_PATH))

            for handler in handlers:
                handler.setLevel(level)
                handler.setFormatter(formatter)
                root.addHandler(handler)

            self._configured = True

    @staticmethod
    def _console_handler() -> logging.Handler:
        if not LOG_CONSOLE_HIGHLIGHTING:
            return logging.StreamHandler(sys.stderr)
        return RichHandler(
            console=Console(theme=DAO_THEME, highlight=False, stderr=True),
            highlighter=DAOLogHighlighter(),
            keywords=[],
            rich_tracebacks=True,
            show_path=False,
            show_time=False,
            show_level=False,
            markup=False,
        )

    @staticmethod
    def _file_handler(path: Path) -> logging.Handler:
        path.parent.mkdir(parents=True, exist_ok=True)
        return logging.handlers.RotatingFileHandler(
            filename=str(path),
            maxBytes=LOG_MAX_FILE_SIZE,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )

    def get_logger(self, name: str) -> logging.Logger:
        if not self._configured:
            self.configure()
        return logging.getLogger(name)

    @property
    def is_configured(self) -> bool:
        return self._configured


class TerminalSafeFormatter(logging.Formatter):
    """
    Formatter that strips escape sequences and control characters.

    Signer identities and payload fields are caller-supplied, so nothing in
    a log line may be allowed to drive the terminal.
    """

    _ansi = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]|\x1b[@-Z\\-_]")
    # Everything below 0x20 except tab and newline, plus DEL
    _control = re.compile(r"[\x00-\x08\x0B-\x1F\x7F]")

    @classmethod
    def sanitize(cls, text: str) -> str:
        if not text:
            return text
        return cls._control.sub("", cls._ansi.sub("", text))

    def format(self, record: logging.LogRecord) -> str:
        return self.sanitize(super().format(record))


class DAOLogHighlighter(RegexHighlighter):
    """Colors addresses, selectors, proposal numbers and statuses."""

    base_style = "dao."
    highlights = [
        r"(?P<address>\b0x[0-9a-fA-F]{40}\b)",
        r"(?P<selector>\b0x[0-9a-fA-F]{8}\b)",
        r"(?P<arrow>(\-\->)|(<--)|→)",
        r"(?P<level_critical>\bCRITICAL\b)",
        r"(?P<level_debug>\bDEBUG\b)",
        r"(?P<level_error>\bERROR\b)",
        r"(?P<level_info>\bINFO\b)",
        r"(?P<level_warning>\bWARNING\b)",
        r"\-\s+\w+\s+-\s+(?P<logger_name>[\w.]+)(?=\s-\s)",
        r"(?P<proposal>#\d+)",
        r"(?P<status_executed>\bEXECUTED\b)",
        r"(?P<status_failed>\bFAILED\b)",
        r"(?P<status_pending>\bPENDING\b)",
        r"(?P<tag>\[.*?\])",
        r"(?P<timestamp>^(.*?)UTC)",
    ]


_manager = LogManager()


def get_logger(name: str) -> logging.Logger:
    """Module logger; configures logging on first use."""
    return _manager.get_logger(name)


def configure_logging(log_level: Optional[str] = None, **kwargs) -> None:
    """Reconfigure logging explicitly (e.g. with the level from diamond_dao.toml)."""
    _manager.configure(log_level=log_level, force=True, **kwargs)


_manager.configure()
