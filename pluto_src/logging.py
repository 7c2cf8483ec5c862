"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.

Logging for pluto_src builds.
Disabled by default; setup_logging() turns on DEBUG output for troubleshooting a build.
"""

import logging
from logging.handlers import RotatingFileHandler
import os
import sys
import threading
import datetime
import contextvars
from typing import Optional


DEBUG = logging.DEBUG

# Output destination constants
STDOUT = 'stdout'  # Log to stdout only
FILE = 'file'      # Log to file only
BOTH = 'both'      # Log to both file and stdout

# Trace ID of the build running in the current context
_trace_id_var = contextvars.ContextVar('trace_id', default=None)


class TraceIDFilter(logging.Filter):
    """Filter that adds trace_id to all log records."""

    def filter(self, record):
        trace_id = _trace_id_var.get()
        record.trace_id = trace_id if trace_id else '-'
        return True


class BuildLogger:
    """
    Singleton logger for pluto_src.

    All or nothing: once enabled, every DEBUG message of the orchestration is
    emitted (flag probes, file enumeration, compile steps). Each Build.build()
    call runs under its own trace ID so interleaved host build logs stay readable.
    """

    _instance: Optional['BuildLogger'] = None
    _lock = threading.Lock()

    def __new__(cls) -> 'BuildLogger':
        """Ensure singleton pattern"""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(BuildLogger, cls).__new__(cls)
        return cls._instance

    def __init__(self):
        if hasattr(self, '_initialized'):
            return

        self._initialized = True

        self._logger = logging.getLogger('pluto_src')
        self._logger.setLevel(logging.CRITICAL)  # Disabled by default
        self._logger.propagate = False
        self._logger.addFilter(TraceIDFilter())

        self._trace_counter = 0
        self._trace_lock = threading.Lock()

        self._output_mode = STDOUT
        self._file_handler = None
        self._stdout_handler = None
        self._log_file = None
        self._custom_log_path = None
        self._handlers_initialized = False

    def _setup_handlers(self):
        """
        Setup handlers based on output mode.
        Creates file handler and/or stdout handler as needed.
        """
        for handler in self._logger.handlers[:]:
            handler.close()
            self._logger.removeHandler(handler)

        self._file_handler = None
        self._stdout_handler = None

        formatter = logging.Formatter(
            '%(asctime)s [%(trace_id)s] - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'
        )

        if self._output_mode in (FILE, BOTH):
            if self._custom_log_path:
                self._log_file = self._custom_log_path
                log_dir = os.path.dirname(self._custom_log_path)
                if log_dir and not os.path.exists(log_dir):
                    os.makedirs(log_dir, exist_ok=True)
            else:
                log_dir = os.path.join(os.getcwd(), "pluto_src_logs")
                os.makedirs(log_dir, exist_ok=True)
                timestamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
                self._log_file = os.path.join(
                    log_dir,
                    f"pluto_build_{timestamp}_{os.getpid()}.log"
                )

            self._file_handler = RotatingFileHandler(
                self._log_file,
                maxBytes=16 * 1024 * 1024,  # 16MB
                backupCount=3
            )
            self._file_handler.setFormatter(formatter)
            self._logger.addHandler(self._file_handler)
        else:
            self._log_file = None

        if self._output_mode in (STDOUT, BOTH):
            self._stdout_handler = logging.StreamHandler(sys.stdout)
            self._stdout_handler.setFormatter(formatter)
            self._logger.addHandler(self._stdout_handler)

    def generate_trace_id(self, prefix: str = "BUILD") -> str:
        """
        Generate a unique trace ID for correlating log messages.

        Format: PREFIX-PID-Counter, e.g. BUILD-12345-1
        """
        with self._trace_lock:
            self._trace_counter += 1
            counter = self._trace_counter
        return f"{prefix}-{os.getpid()}-{counter}"

    def set_trace_id(self, trace_id: Optional[str]):
        """Set the trace ID for the current context."""
        _trace_id_var.set(trace_id)

    def get_trace_id(self) -> Optional[str]:
        return _trace_id_var.get()

    def clear_trace_id(self):
        _trace_id_var.set(None)

    def _log(self, level: int, msg: str, *args, **kwargs):
        # Fast level check (zero overhead if disabled)
        if not self._logger.isEnabledFor(level):
            return
        if args:
            msg = msg % args
        self._logger.log(level, msg, **kwargs)

    def debug(self, msg: str, *args, **kwargs):
        """Log at DEBUG level"""
        self._log(logging.DEBUG, f"[pluto_src] {msg}", *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        """Log at INFO level"""
        self._log(logging.INFO, f"[pluto_src] {msg}", *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        """Log at WARNING level"""
        self._log(logging.WARNING, f"[pluto_src] {msg}", *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        """Log at ERROR level"""
        self._log(logging.ERROR, f"[pluto_src] {msg}", *args, **kwargs)

    def _setLevel(self, level: int, output: Optional[str] = None, log_file_path: Optional[str] = None):
        """
        Internal method to set logging level (use setup_logging() instead).

        Raises:
            ValueError: If output mode is invalid
        """
        if output is not None:
            if output not in (FILE, STDOUT, BOTH):
                raise ValueError(
                    f"Invalid output mode: {output}. "
                    f"Must be one of: {FILE}, {STDOUT}, {BOTH}"
                )
            self._output_mode = output

        if log_file_path is not None:
            self._custom_log_path = log_file_path

        if not self._handlers_initialized or output is not None or log_file_path is not None:
            self._setup_handlers()
            self._handlers_initialized = True

        self._logger.setLevel(level)

    def getLevel(self) -> int:
        return self._logger.level

    def isEnabledFor(self, level: int) -> bool:
        return self._logger.isEnabledFor(level)

    def addHandler(self, handler: logging.Handler):
        """Add a handler to the logger"""
        self._logger.addHandler(handler)

    def removeHandler(self, handler: logging.Handler):
        """Remove a handler from the logger"""
        self._logger.removeHandler(handler)

    @property
    def handlers(self) -> list:
        return self._logger.handlers

    @property
    def output(self) -> str:
        """Get the current output mode"""
        return self._output_mode

    @property
    def log_file(self) -> Optional[str]:
        """Get the current log file path (None if file output is disabled)"""
        return self._log_file


# Singleton logger instance
logger = BuildLogger()


def setup_logging(output: str = 'stdout', log_file_path: Optional[str] = None):
    """
    Enable DEBUG logging for troubleshooting a build.

    Args:
        output: Where to send logs (default: 'stdout')
                Options: 'file', 'stdout', 'both'
        log_file_path: Optional custom path for log file
                      If not specified, auto-generates in ./pluto_src_logs/

    Examples:
        import pluto_src

        # Stdout only (shows up in the host build's output)
        pluto_src.setup_logging()

        # Both file and stdout
        pluto_src.setup_logging(output='both', log_file_path="/tmp/pluto-build.log")
    """
    logger._setLevel(logging.DEBUG, output, log_file_path)
    return logger
