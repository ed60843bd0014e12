"""
Structured Exception Hierarchy for iptparse

This module provides the exception hierarchy used by the listing parser
and its command line front end, with user-friendly error messages and
suggestions for error resolution.

Key Features:
- Separate categories for malformed input, bad numeric values and
  defects in the parser itself
- Offending raw line and line number carried on every input error
- Suggested actions for error resolution
- Debug information available only in verbose mode
"""

import sys
import traceback
from typing import Optional, Dict, Any, List
from enum import IntEnum


class ErrorCode(IntEnum):
    """Standard exit codes for the application."""
    SUCCESS = 0
    NOT_FOUND = 2
    INVALID_INPUT = 10
    CONFIGURATION_ERROR = 11
    IO_ERROR = 12
    INTERNAL_ERROR = 15


class IptparseError(Exception):
    """
    Base exception class for all iptparse errors.

    Provides structured error information with user-friendly messages
    and suggested actions for resolution.
    """

    def __init__(
        self,
        message: str,
        suggestion: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        """
        Initialize error with structured information.

        Args:
            message: User-friendly error message
            suggestion: Suggested action to resolve the error
            error_code: Exit code for the error
            details: Additional error details (shown only in verbose mode)
            cause: Original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.suggestion = suggestion
        self.error_code = error_code
        self.details = details or {}
        self.cause = cause

    def format_error(self, verbose_level: int = 0) -> str:
        """
        Format error message based on verbosity level.

        Args:
            verbose_level: 0=basic, 1=verbose, 2=debug, 3=full details

        Returns:
            Formatted error message
        """
        lines = [f"Error: {self.message}"]

        if self.suggestion:
            lines.append(f"Suggestion: {self.suggestion}")

        if verbose_level >= 1 and self.details:
            lines.append("\nDetails:")
            for key, value in self.details.items():
                lines.append(f"  {key}: {value}")

        if verbose_level >= 2 and self.cause:
            lines.append(f"\nCaused by: {type(self.cause).__name__}: {str(self.cause)}")

        if verbose_level >= 3:
            lines.append("\nStack trace:")
            tb = traceback.format_exc()
            if tb and tb != 'NoneType: None\n':
                lines.append(tb)
            elif self.__traceback__ is not None:
                lines.append(''.join(traceback.format_tb(self.__traceback__)))
            else:
                lines.append("(No active exception - stack trace not available)")

        return "\n".join(lines)


# Configuration Errors

class ConfigurationError(IptparseError):
    """Raised when there are configuration-related issues."""

    def __init__(self, message: str, config_file: Optional[str] = None, **kwargs):
        suggestion = "Check your configuration file format and values."
        if config_file:
            suggestion += f" Configuration file: {config_file}"
            kwargs['details'] = kwargs.get('details', {})
            kwargs['details']['config_file'] = config_file
        super().__init__(
            message=message,
            suggestion=suggestion,
            error_code=ErrorCode.CONFIGURATION_ERROR,
            **kwargs
        )


# Listing Errors

class ListingError(IptparseError):
    """
    Base class for errors raised while parsing a rule listing.

    Carries the offending raw line (None when the failure happened at
    end of input), its 1-based line number and a short reason.
    """

    def __init__(
        self,
        reason: str,
        line: Optional[str] = None,
        line_number: Optional[int] = None,
        **kwargs
    ):
        details = kwargs.pop('details', {})
        details['reason'] = reason
        kwargs.setdefault('error_code', ErrorCode.INVALID_INPUT)
        super().__init__(message=self._compose(reason, line), details=details, **kwargs)
        self.reason = reason
        self.line = None
        self.line_number = None
        self.locate(line, line_number)

    @staticmethod
    def _compose(reason: str, line: Optional[str]) -> str:
        if line is None:
            return f"{reason}, when encountered EOF"
        return f"{reason}, while parsing line: {line!r}"

    def locate(self, line: Optional[str], line_number: Optional[int]) -> None:
        """Attach the offending line and its number, rebuilding the message."""
        if line is not None:
            self.line = line
            self.details['line'] = repr(line)
        if line_number is not None:
            self.line_number = line_number
            self.details['line_number'] = line_number
        self.message = self._compose(self.reason, self.line)
        self.args = (self.message,)


class ListingSyntaxError(ListingError):
    """Raised when a line matches none of the constructs expected in the current state."""

    def __init__(self, reason: str, line: Optional[str] = None,
                 line_number: Optional[int] = None, **kwargs):
        super().__init__(reason, line, line_number, **kwargs)
        self.suggestion = (
            "The input does not look like a verbose numeric rule listing. "
            "Generate it with:\n"
            "  iptables [-t <table>] -L -n -v -x [--line-numbers]"
        )


class ListingValueError(ListingError):
    """Raised when a counter or reference count is not a valid 64-bit non-negative integer."""

    def __init__(self, field: str, value: str, line: Optional[str] = None,
                 line_number: Optional[int] = None, **kwargs):
        details = kwargs.pop('details', {})
        details.update({"field": field, "value": value})
        super().__init__(
            f"invalid {field} value {value!r}",
            line,
            line_number,
            details=details,
            **kwargs
        )
        self.field = field
        self.value = value
        self.suggestion = (
            "Counters must be exact decimal values. Make sure the listing "
            "was produced with -x (exact counters) and is not truncated."
        )


class InternalConsistencyError(ListingError):
    """
    Raised when the parser reaches a configuration its transition table
    makes impossible. This indicates a defect in the parser, not bad input.
    """

    def __init__(self, reason: str, line: Optional[str] = None,
                 line_number: Optional[int] = None, **kwargs):
        kwargs['error_code'] = ErrorCode.INTERNAL_ERROR
        super().__init__(reason, line, line_number, **kwargs)
        self.suggestion = "This is a bug in iptparse. Please report it with the input that triggered it."


# Input Errors

class InputDecodeError(IptparseError):
    """Raised when the input bytes cannot be decoded with the configured encoding."""

    def __init__(self, source: str, encoding: str, **kwargs):
        cause = kwargs.get('cause')
        details = kwargs.get('details', {})
        details.update({"source": source, "encoding": encoding})
        if isinstance(cause, UnicodeDecodeError):
            details["byte_offset"] = cause.start
        kwargs['details'] = details
        kwargs.pop('error_code', None)

        name = "standard input" if source == '-' else source
        super().__init__(
            message=f"Input {name} is not valid {encoding} text",
            error_code=ErrorCode.INVALID_INPUT,
            **kwargs
        )

        self.suggestion = (
            "Pass the listing's encoding with --encoding (for example "
            "--encoding latin-1) or set 'encoding' in iptparse.yaml."
        )


# Query Errors

class ChainNotFoundError(IptparseError):
    """Raised when a requested chain is not present in a parsed table."""

    def __init__(self, chain_name: str, available_chains: Optional[List[str]] = None, **kwargs):
        chains_hint = ""
        if available_chains and len(available_chains) <= 10:
            chains_hint = f"\nAvailable chains: {', '.join(available_chains)}"
        elif available_chains:
            chains_hint = f"\nFound {len(available_chains)} chains. Use -v to see all."

        details = kwargs.get('details', {})
        details.update({
            "chain_name": chain_name,
            "available_chains": available_chains
        })
        kwargs['details'] = details
        kwargs.pop('error_code', None)

        super().__init__(
            message=f"Chain '{chain_name}' not found",
            error_code=ErrorCode.NOT_FOUND,
            **kwargs
        )

        self.suggestion = f"Please check the chain name spelling; chain names are case sensitive.{chains_hint}"


# Error Handler Utility

class ErrorHandler:
    """Utility class for consistent error handling across the application."""

    @staticmethod
    def handle_error(error: Exception, verbose_level: int = 0) -> int:
        """
        Handle an error and return appropriate exit code.

        Args:
            error: The exception to handle
            verbose_level: Verbosity level (0-3)

        Returns:
            Exit code for the application
        """
        if isinstance(error, IptparseError):
            print(error.format_error(verbose_level), file=sys.stderr)
            return error.error_code
        elif isinstance(error, OSError):
            print(f"Error: Failed to read input: {error}", file=sys.stderr)
            print("Suggestion: Check that the file exists and is readable.", file=sys.stderr)
            return ErrorCode.IO_ERROR
        else:
            # Handle unexpected errors
            print("Error: An unexpected error occurred", file=sys.stderr)
            print("Suggestion: This might be a bug. Please report it with the full error output.", file=sys.stderr)

            if verbose_level >= 1:
                print(f"\nError type: {type(error).__name__}", file=sys.stderr)
                print(f"Error message: {str(error)}", file=sys.stderr)

            if verbose_level >= 3:
                print("\nStack trace:", file=sys.stderr)
                traceback.print_exc(file=sys.stderr)

            return ErrorCode.INTERNAL_ERROR

    @staticmethod
    def wrap_main(main_func):
        """
        Decorator to wrap main functions with error handling.

        Usage:
            @ErrorHandler.wrap_main
            def run(args):
                # Your main function code
                pass
        """
        def wrapper(*args, **kwargs):
            try:
                return main_func(*args, **kwargs)
            except KeyboardInterrupt:
                print("\nOperation cancelled by user", file=sys.stderr)
                return ErrorCode.INTERNAL_ERROR
            except Exception as e:
                # Get verbose level from args if available
                verbose_level = 0
                if args and hasattr(args[0], 'verbose'):
                    verbose_level = args[0].verbose
                elif 'verbose_level' in kwargs:
                    verbose_level = kwargs['verbose_level']

                return ErrorHandler.handle_error(e, verbose_level)

        return wrapper
