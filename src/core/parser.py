#!/usr/bin/env -S python3 -B -u
"""
Listing Parser

Parses the output of:

    iptables [-t <table>] -L -n -v -x [--line-numbers]

into a Table/Chain/Rule tree with a single forward pass over the lines.

The parser is an explicit state machine. Every line, plus one synthetic
END_OF_INPUT event after the last line, goes through ``step()``, which
applies the matcher for the current state and either extends the tree
and moves to the next state, or raises. The end-of-input event is a real
transition: it is what confirms the listing did not stop between a chain
header and its column header.

States:
- EXPECT_CHAIN: a chain header, or end of input
- EXPECT_COLUMN_HEADER: the column title line following every chain header
- EXPECT_RULE_OR_BLANK_OR_CHAIN: a rule row, a blank line closing the
  chain, or end of input
- TERMINAL: absorbing; reached after end of input or a failure
"""

import io
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from iptparse.core.exceptions import (
    ListingError, ListingSyntaxError, InternalConsistencyError
)
from iptparse.core.line_source import BufLineReader, LineSource
from iptparse.core.matchers import match_chain_header, match_column_header, match_rule_row
from iptparse.core.models import Chain, Rule, Table
from iptparse.core.structured_logging import get_logger


class ParserState(Enum):
    EXPECT_CHAIN = "expect_chain"
    EXPECT_COLUMN_HEADER = "expect_column_header"
    EXPECT_RULE_OR_BLANK_OR_CHAIN = "expect_rule_or_blank_or_chain"
    TERMINAL = "terminal"


class _EndOfInput:
    """Synthetic final event fed to the state machine after the last line."""

    def __repr__(self):
        return "END_OF_INPUT"


END_OF_INPUT = _EndOfInput()

REASON_CHAIN = "failed to match chain line"
REASON_COLUMN_HEADER = "missing column header"
REASON_RULE = "failed to match rule line"


def normalize_line(line: str) -> str:
    """Strip trailing spaces, carriage returns and newlines only."""
    return line.rstrip(' \r\n')


class ListingParser:
    """
    State machine building one Table from one listing.

    An instance is good for a single parse; create a new one per input.
    """

    def __init__(self, verbose_level: int = 0):
        self.verbose_level = verbose_level
        self.logger = get_logger(__name__, verbose_level)
        self.state = ParserState.EXPECT_CHAIN
        self.table = Table()
        self.line_numbers = True
        self.line_number = 0
        self.succeeded = False

    def step(self, line: Union[str, _EndOfInput]) -> ParserState:
        """
        Apply one transition for a normalized line or END_OF_INPUT.

        Returns:
            The new state

        Raises:
            ListingSyntaxError: line is not valid in the current state
            ListingValueError: a counter in the line is invalid
            InternalConsistencyError: the transition table was violated
        """
        eof = line is END_OF_INPUT
        raw: Optional[str] = None if eof else line
        if not eof:
            self.line_number += 1

        try:
            if self.state is ParserState.EXPECT_CHAIN:
                self.state = self._expect_chain(raw)
            elif self.state is ParserState.EXPECT_COLUMN_HEADER:
                self.state = self._expect_column_header(raw)
            elif self.state is ParserState.EXPECT_RULE_OR_BLANK_OR_CHAIN:
                self.state = self._expect_rule(raw)
            else:
                raise InternalConsistencyError("terminal state machine state")
        except ListingError as e:
            self.state = ParserState.TERMINAL
            self.succeeded = False
            if not eof:
                e.locate(raw, self.line_number)
            self.logger.log_parse_failure(e, internal=isinstance(e, InternalConsistencyError))
            raise

        if eof:
            self.succeeded = True
        return self.state

    def _expect_chain(self, line: Optional[str]) -> ParserState:
        if line is None:
            return ParserState.TERMINAL

        header = match_chain_header(line)
        if header is None:
            raise ListingSyntaxError(REASON_CHAIN, line, self.line_number)

        if header.is_builtin:
            chain = Chain.builtin(header.name, header.policy, header.packet_count, header.byte_count)
        else:
            chain = Chain.user_defined(header.name, header.reference_count)
        self.table.add_chain(chain)
        self.logger.log_chain(chain, self.line_number)
        return ParserState.EXPECT_COLUMN_HEADER

    def _expect_column_header(self, line: Optional[str]) -> ParserState:
        if line is None:
            raise ListingSyntaxError(REASON_COLUMN_HEADER)
        columns = match_column_header(line)
        if columns is None:
            raise ListingSyntaxError(REASON_COLUMN_HEADER, line, self.line_number)
        self.line_numbers = columns.line_numbers
        return ParserState.EXPECT_RULE_OR_BLANK_OR_CHAIN

    def _expect_rule(self, line: Optional[str]) -> ParserState:
        if line is None:
            return ParserState.TERMINAL
        if line == "":
            return ParserState.EXPECT_CHAIN

        row = match_rule_row(line, self.line_numbers)
        if row is None:
            raise ListingSyntaxError(REASON_RULE, line, self.line_number)

        chain = self.table.last_chain
        if chain is None:
            raise InternalConsistencyError("matched a rule, when no chains exist", line, self.line_number)

        rule = Rule(
            packet_count=row.packet_count,
            byte_count=row.byte_count,
            target=row.target,
            protocol=row.protocol,
            option=row.option,
            in_interface=row.in_interface,
            out_interface=row.out_interface,
            source=row.source,
            destination=row.destination,
            match=row.match,
            comment=row.comment,
        )
        chain.add_rule(rule)
        self.logger.log_rule(chain, rule, self.line_number)
        return ParserState.EXPECT_RULE_OR_BLANK_OR_CHAIN

    def feed(self, source: LineSource) -> Table:
        """
        Consume every line of a source, then the end-of-input event.

        Errors raised by the source propagate unchanged.
        """
        with self.logger.timer("listing parse"):
            while True:
                line = source.read_line()
                if line is None:
                    break
                self.step(normalize_line(line))
            self.step(END_OF_INPUT)

        self.logger.log_parse_summary(self.table, self.line_number)
        return self.result()

    def result(self) -> Table:
        """Return the table of a completed parse."""
        if not self.succeeded:
            raise InternalConsistencyError("parse result requested before end of input")
        return self.table


def parse(source: LineSource, verbose_level: int = 0) -> Table:
    """
    Parse a listing supplied by a line source.

    Args:
        source: Object with read_line() returning lines or None at end
        verbose_level: Logging verbosity (0-3)

    Returns:
        The populated Table; nothing is returned on failure
    """
    return ListingParser(verbose_level).feed(source)


def parse_text(text: str, verbose_level: int = 0) -> Table:
    """Parse a listing held in a string."""
    return parse_stream(io.StringIO(text), verbose_level)


def parse_stream(stream, verbose_level: int = 0) -> Table:
    """Parse a listing from an open text stream."""
    return parse(BufLineReader(stream), verbose_level)


def parse_file(path: Union[str, Path], encoding: str = 'utf-8', verbose_level: int = 0) -> Table:
    """Parse a listing file."""
    with open(path, 'r', encoding=encoding) as f:
        return parse_stream(f, verbose_level)
