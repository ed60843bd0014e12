#!/usr/bin/env -S python3 -B -u
"""
Structured Logging for iptparse

Verbosity-filtered logging for the listing parser. Progress is reported
per construct (chain header, rule row) so that ``-vv`` shows where in a
listing the parser is and ``-vvv`` shows every rule it builds.

Failures caused by the input are reported to the user by the command
line front end, so the parser only logs them at debug level. Failures
that indicate a parser defect are logged at error level with an
``[INTERNAL]`` marker.
"""

import logging as std_logging
import sys
import time
import json
from typing import Dict, Any
from contextlib import contextmanager


class StructuredLogger:
    """
    Structured logger with verbosity control and consistent formatting.

    Verbosity levels:
    - 0: Only parser defects
    - 1: Parse summary
    - 2: Chains, timing and input failures
    - 3: Every rule
    """

    def __init__(self, name: str, verbose_level: int = 0):
        self.name = name
        self.verbose_level = verbose_level
        self.logger = std_logging.getLogger(name)

        self.logger.setLevel(std_logging.DEBUG)
        self.logger.propagate = False
        self.logger.handlers.clear()

        handler = std_logging.StreamHandler(sys.stderr)
        handler.setFormatter(self._create_formatter())
        self.logger.addHandler(handler)

    def _create_formatter(self) -> std_logging.Formatter:
        """Create appropriate formatter based on verbosity."""
        if self.verbose_level >= 3:
            return std_logging.Formatter(
                '%(asctime)s [%(name)s] %(levelname)s: %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
        elif self.verbose_level >= 2:
            return std_logging.Formatter('[%(name)s] %(levelname)s: %(message)s')
        else:
            return std_logging.Formatter('%(message)s')

    def _should_log(self, level: int) -> bool:
        level_map = {
            std_logging.ERROR: 0,
            std_logging.INFO: 1,
            std_logging.DEBUG: 2,
        }
        return self.verbose_level >= level_map.get(level, 3)

    def error(self, message: str, **context: Any) -> None:
        """Log error message (always shown)."""
        if context and self.verbose_level >= 2:
            message = f"{message} | {self._format_context(context)}"
        self.logger.error(message)

    def info(self, message: str, **context: Any) -> None:
        """Log info message (shown at verbosity 1+)."""
        if self._should_log(std_logging.INFO):
            if context and self.verbose_level >= 2:
                message = f"{message} | {self._format_context(context)}"
            self.logger.info(message)

    def debug(self, message: str, **context: Any) -> None:
        """Log debug message (shown at verbosity 2+)."""
        if self._should_log(std_logging.DEBUG):
            if context:
                message = f"{message} | {self._format_context(context)}"
            self.logger.debug(message)

    def trace(self, message: str, **context: Any) -> None:
        """Log trace message (shown at verbosity 3)."""
        if self.verbose_level >= 3:
            if context:
                message = f"{message} | {self._format_context(context)}"
            self.logger.debug(f"[TRACE] {message}")

    def _format_context(self, context: Dict[str, Any]) -> str:
        if self.verbose_level >= 3:
            return json.dumps(context, default=str)
        return " ".join(f"{k}={v}" for k, v in context.items())

    @contextmanager
    def timer(self, operation: str):
        """Context manager for timing operations."""
        start_time = time.time()
        self.debug(f"Starting {operation}")

        try:
            yield
        finally:
            elapsed = time.time() - start_time
            self.debug(f"Completed {operation}", elapsed_ms=f"{elapsed*1000:.2f}")

    # Parser specific helpers

    def log_chain(self, chain, line_number: int) -> None:
        if chain.is_builtin:
            self.debug(f"Chain {chain.name}", line=line_number, policy=chain.policy)
        else:
            self.debug(f"Chain {chain.name}", line=line_number, references=chain.reference_count)

    def log_rule(self, chain, rule, line_number: int) -> None:
        self.trace(
            f"Rule {len(chain.rules)} in {chain.name}",
            line=line_number,
            target=rule.target,
            packets=rule.packet_count,
            bytes=rule.byte_count
        )

    def log_parse_summary(self, table, line_count: int) -> None:
        self.info(
            f"Parsed {len(table)} chains, {table.rule_count()} rules",
            lines=line_count,
            user_chains=len(table.user_chains())
        )

    def log_parse_failure(self, error: Exception, internal: bool = False) -> None:
        """
        Log a failed parse.

        Input errors are the caller's to report and are logged at debug
        level only. Parser defects are always logged.
        """
        context = {"error_type": type(error).__name__}
        line_number = getattr(error, 'line_number', None)
        if line_number is not None:
            context["line"] = line_number

        if internal:
            self.error(f"[INTERNAL] {error}", **context)
        else:
            self.debug(f"Parse failed: {error}", **context)


def get_logger(name: str, verbose_level: int = 0) -> StructuredLogger:
    """
    Get or create a structured logger.

    Args:
        name: Logger name (usually __name__)
        verbose_level: Verbosity level (0-3)

    Returns:
        StructuredLogger instance
    """
    if not hasattr(get_logger, '_loggers'):
        get_logger._loggers = {}

    cache_key = f"{name}:{verbose_level}"
    if cache_key not in get_logger._loggers:
        get_logger._loggers[cache_key] = StructuredLogger(name, verbose_level)

    return get_logger._loggers[cache_key]


def setup_logging() -> None:
    """
    Setup logging for a command line run.

    Module loggers created through get_logger() filter on their own
    verbosity; everything else reaching the root logger is limited to
    warnings and errors.
    """
    root_logger = std_logging.getLogger()
    root_logger.setLevel(std_logging.WARNING)
