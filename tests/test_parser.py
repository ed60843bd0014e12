#!/usr/bin/env -S python3 -B -u
"""
Test suite for the listing parser state machine.

Test Categories:
1. Well-formed listings - chain and rule extraction, ordering
2. Transition table - every state/input pair
3. Failure paths - syntax, value and internal consistency errors
4. Line sources - stream, iterable and file entry points
"""

import io
import os
import tempfile
import unittest

from iptparse.core.exceptions import (
    ErrorCode, InternalConsistencyError, ListingError, ListingSyntaxError, ListingValueError
)
from iptparse.core.line_source import IterLineReader
from iptparse.core.models import Chain, Table
from iptparse.core.parser import (
    END_OF_INPUT, ListingParser, ParserState, normalize_line, parse, parse_file,
    parse_stream, parse_text
)


HEADER = "num   pkts bytes target     prot opt in     out     source               destination"

SCENARIO_LISTING = (
    "Chain INPUT (policy ACCEPT 10 packets, 500 bytes)\n"
    f"{HEADER}\n"
    "1        3    180 ACCEPT     tcp  --  eth0   *       0.0.0.0/0            0.0.0.0/0           /* allow-ssh */\n"
    "\n"
    "Chain LOGGING (0 references)\n"
    f"{HEADER}\n"
)

FILTER_LISTING = """\
Chain INPUT (policy DROP 1523 packets, 91380 bytes)
num      pkts      bytes target     prot opt in     out     source               destination
1       48211  31415926 ACCEPT     all  --  lo     *       0.0.0.0/0            0.0.0.0/0
2      902113 812345678 ACCEPT     all  --  *      *       0.0.0.0/0            0.0.0.0/0            ctstate RELATED,ESTABLISHED
3          17       1020 ACCEPT     tcp  --  eth0   *       10.1.0.0/16          0.0.0.0/0            tcp dpt:22 /* ssh from hq */
4           0          0 LOGDROP    all  --  *      *       0.0.0.0/0            0.0.0.0/0

Chain FORWARD (policy DROP 0 packets, 0 bytes)
num      pkts      bytes target     prot opt in     out     source               destination

Chain OUTPUT (policy ACCEPT 88120 packets, 9912345 bytes)
num      pkts      bytes target     prot opt in     out     source               destination

Chain LOGDROP (1 references)
num      pkts      bytes target     prot opt in     out     source               destination
1           0          0 LOG        all  --  *      *       0.0.0.0/0            0.0.0.0/0            limit: avg 5/min burst 5 LOG flags 0 level 4 prefix "DROP: "
2           0          0 DROP       all  --  *      *       0.0.0.0/0            0.0.0.0/0
"""


class TestWellFormedListings(unittest.TestCase):
    """Test parsing of valid listings."""

    def test_scenario_two_chains(self):
        """Built-in chain with one rule followed by an empty user chain."""
        table = parse_text(SCENARIO_LISTING)

        self.assertEqual(len(table), 2)
        builtin, user = table.chains

        self.assertEqual(builtin.name, "INPUT")
        self.assertTrue(builtin.is_builtin)
        self.assertEqual(builtin.policy, "ACCEPT")
        self.assertEqual(builtin.packet_count, 10)
        self.assertEqual(builtin.byte_count, 500)
        self.assertEqual(len(builtin.rules), 1)

        rule = builtin.rules[0]
        self.assertEqual(rule.target, "ACCEPT")
        self.assertEqual(rule.protocol, "tcp")
        self.assertEqual(rule.in_interface, "eth0")
        self.assertEqual(rule.out_interface, "*")
        self.assertEqual(rule.packet_count, 3)
        self.assertEqual(rule.byte_count, 180)
        self.assertEqual(rule.comment, "allow-ssh")

        self.assertEqual(user.name, "LOGGING")
        self.assertTrue(user.is_user_defined)
        self.assertEqual(user.reference_count, 0)
        self.assertIsNone(user.policy)
        self.assertEqual(user.rules, [])

    def test_filter_table(self):
        """Chain count and order follow the chain headers of the input."""
        table = parse_text(FILTER_LISTING)

        self.assertEqual(table.chain_names(), ["INPUT", "FORWARD", "OUTPUT", "LOGDROP"])
        self.assertEqual([len(c) for c in table], [4, 0, 0, 2])
        self.assertEqual(table.rule_count(), 6)

        for chain in table:
            self.assertNotEqual(chain.is_builtin, chain.is_user_defined)

    def test_rule_order_and_fields(self):
        """Rules keep listing order and exact counters."""
        chain = parse_text(FILTER_LISTING).get_chain("INPUT")

        self.assertEqual([r.packet_count for r in chain.rules], [48211, 902113, 17, 0])
        self.assertEqual(chain.rules[1].byte_count, 812345678)
        self.assertEqual(chain.rules[1].match, "ctstate RELATED,ESTABLISHED")
        self.assertEqual(chain.rules[2].source, "10.1.0.0/16")
        self.assertEqual(chain.rules[2].match, "tcp dpt:22")
        self.assertEqual(chain.rules[2].comment, "ssh from hq")
        self.assertEqual(chain.rules[3].target, "LOGDROP")

    def test_match_text_with_quotes(self):
        """Free-text match extensions are kept verbatim."""
        log_rule = parse_text(FILTER_LISTING).get_chain("LOGDROP").rules[0]
        self.assertEqual(
            log_rule.match,
            'limit: avg 5/min burst 5 LOG flags 0 level 4 prefix "DROP: "'
        )

    def test_empty_input(self):
        """No lines at all is an empty, valid table."""
        table = parse_text("")
        self.assertEqual(len(table), 0)

    def test_last_chain_without_column_rows(self):
        """Input may end right after a column header."""
        table = parse_text("Chain X (2 references)\n" + HEADER)
        self.assertEqual(table.chains[0].reference_count, 2)

    def test_trailing_blank_line(self):
        """A blank line after the last chain returns to chain state before EOF."""
        table = parse_text(SCENARIO_LISTING + "\n")
        self.assertEqual(len(table), 2)

    def test_crlf_and_padding(self):
        """Carriage returns and trailing spaces are stripped before matching."""
        text = SCENARIO_LISTING.replace("\n", "   \r\n")
        self.assertEqual(parse_text(text), parse_text(SCENARIO_LISTING))

    def test_unnumbered_listing(self):
        """Listing produced without --line-numbers."""
        text = (
            "Chain INPUT (policy ACCEPT 0 packets, 0 bytes)\n"
            "    pkts      bytes target     prot opt in     out     source               destination\n"
            "       5        300 ACCEPT     icmp --  *      *       0.0.0.0/0            0.0.0.0/0            icmptype 8\n"
        )
        rule = parse_text(text).chains[0].rules[0]
        self.assertEqual(rule.packet_count, 5)
        self.assertEqual(rule.byte_count, 300)
        self.assertEqual(rule.protocol, "icmp")
        self.assertEqual(rule.match, "icmptype 8")

    def test_reparse_is_structurally_equal(self):
        """Parsing the same text twice yields equal, independent trees."""
        first = parse_text(FILTER_LISTING)
        second = parse_text(FILTER_LISTING)
        self.assertEqual(first, second)
        self.assertIsNot(first, second)
        self.assertIsNot(first.chains[0].rules, second.chains[0].rules)


class TestTransitions(unittest.TestCase):
    """Test the transition table one step at a time."""

    def setUp(self):
        self.parser = ListingParser()

    def test_initial_state(self):
        self.assertIs(self.parser.state, ParserState.EXPECT_CHAIN)

    def test_chain_then_header_then_rules(self):
        """Walk chain header, column header, rule, blank and EOF."""
        p = self.parser
        self.assertIs(p.step("Chain INPUT (policy ACCEPT 0 packets, 0 bytes)"), ParserState.EXPECT_COLUMN_HEADER)
        self.assertIs(p.step(HEADER), ParserState.EXPECT_RULE_OR_BLANK_OR_CHAIN)
        self.assertIs(p.step("1 0 0 ACCEPT all -- * * 0.0.0.0/0 0.0.0.0/0"), ParserState.EXPECT_RULE_OR_BLANK_OR_CHAIN)
        self.assertIs(p.step(""), ParserState.EXPECT_CHAIN)
        self.assertIs(p.step(END_OF_INPUT), ParserState.TERMINAL)
        self.assertEqual(len(p.result().chains[0].rules), 1)

    def test_eof_in_rule_state_succeeds(self):
        p = self.parser
        p.step("Chain A (1 references)")
        p.step(HEADER)
        self.assertIs(p.step(END_OF_INPUT), ParserState.TERMINAL)
        self.assertEqual(p.result().chain_names(), ["A"])

    def test_result_before_eof(self):
        """The table is only released after the end-of-input transition."""
        self.parser.step("Chain A (1 references)")
        with self.assertRaises(InternalConsistencyError):
            self.parser.result()

    def test_line_after_terminal(self):
        """A line arriving in the terminal state is an internal error."""
        self.parser.step(END_OF_INPUT)
        with self.assertRaises(InternalConsistencyError) as ctx:
            self.parser.step("Chain A (1 references)")
        self.assertEqual(ctx.exception.error_code, ErrorCode.INTERNAL_ERROR)
        self.assertEqual(ctx.exception.line, "Chain A (1 references)")

    def test_rule_with_no_chain(self):
        """A rule row accepted before any chain exists is an internal error."""
        self.parser.state = ParserState.EXPECT_RULE_OR_BLANK_OR_CHAIN
        with self.assertRaises(InternalConsistencyError) as ctx:
            self.parser.step("1 0 0 ACCEPT all -- * * 0.0.0.0/0 0.0.0.0/0")
        self.assertIn("no chains exist", ctx.exception.reason)
        self.assertNotIsInstance(ctx.exception, ListingSyntaxError)
        self.assertIs(self.parser.state, ParserState.TERMINAL)

    def test_failure_is_absorbing(self):
        """After a failure every further event is an internal error."""
        with self.assertRaises(ListingSyntaxError):
            self.parser.step("garbage")
        self.assertIs(self.parser.state, ParserState.TERMINAL)
        with self.assertRaises(InternalConsistencyError):
            self.parser.step(END_OF_INPUT)

    def test_normalize_line(self):
        """Only trailing spaces, CR and LF are removed."""
        self.assertEqual(normalize_line("  a b \r\n"), "  a b")
        self.assertEqual(normalize_line("a\t\n"), "a\t")
        self.assertEqual(normalize_line("   \n"), "")


class TestFailures(unittest.TestCase):
    """Test that malformed input fails at the first offending line."""

    def test_unrecognized_chain_header(self):
        """A header matching neither form is a syntax error naming that line."""
        bad = "Chain INPUT (policy ACCEPT lots of packets)"
        with self.assertRaises(ListingSyntaxError) as ctx:
            parse_text(SCENARIO_LISTING + "\n" + bad + "\n")
        err = ctx.exception
        self.assertEqual(err.line, bad)
        self.assertEqual(err.line_number, 8)
        self.assertEqual(err.reason, "failed to match chain line")
        self.assertIn(repr(bad), str(err))

    def test_missing_column_header_at_eof(self):
        """EOF right after a chain header fails with missing column header."""
        with self.assertRaises(ListingSyntaxError) as ctx:
            parse_text("Chain INPUT (policy ACCEPT 0 packets, 0 bytes)\n")
        err = ctx.exception
        self.assertEqual(err.reason, "missing column header")
        self.assertIsNone(err.line)
        self.assertIn("when encountered EOF", str(err))

    def test_missing_column_header_line(self):
        """A rule row in place of the column header fails on that row."""
        text = "Chain INPUT (policy ACCEPT 0 packets, 0 bytes)\n1 0 0 ACCEPT all -- * * 0.0.0.0/0 0.0.0.0/0\n"
        with self.assertRaises(ListingSyntaxError) as ctx:
            parse_text(text)
        self.assertEqual(ctx.exception.reason, "missing column header")
        self.assertEqual(ctx.exception.line_number, 2)

    def test_non_numeric_byte_counter(self):
        """A bad counter is a value error, not a silent zero."""
        text = SCENARIO_LISTING.replace("    180 ACCEPT", "    18x ACCEPT")
        with self.assertRaises(ListingValueError) as ctx:
            parse_text(text)
        err = ctx.exception
        self.assertEqual(err.field, "bytes")
        self.assertEqual(err.value, "18x")
        self.assertEqual(err.line_number, 3)
        self.assertEqual(err.error_code, ErrorCode.INVALID_INPUT)

    def test_counter_overflow(self):
        """Counters beyond 2**63-1 fail instead of being truncated."""
        text = SCENARIO_LISTING.replace("    180 ACCEPT", " 9223372036854775808 ACCEPT")
        with self.assertRaises(ListingValueError):
            parse_text(text)

    def test_rule_row_before_any_chain(self):
        """A rule row as first line is rejected at line 1, never dropped."""
        with self.assertRaises(ListingError) as ctx:
            parse_text("1 0 0 ACCEPT all -- * * 0.0.0.0/0 0.0.0.0/0\n")
        self.assertEqual(ctx.exception.line_number, 1)

    def test_unrecognized_rule_row(self):
        """A short row in a rule block is a syntax error."""
        text = SCENARIO_LISTING + "2 0 0 DROP\n"
        with self.assertRaises(ListingSyntaxError) as ctx:
            parse_text(text)
        self.assertEqual(ctx.exception.reason, "failed to match rule line")
        self.assertEqual(ctx.exception.line, "2 0 0 DROP")

    def test_blank_target_rule_row(self):
        """A rule row with an empty target column fails instead of shifting columns."""
        row = "2        0        0            all  --  *      *       0.0.0.0/0            0.0.0.0/0"
        text = SCENARIO_LISTING.replace("\n\nChain LOGGING", f"\n{row}\n\nChain LOGGING")
        with self.assertRaises(ListingSyntaxError) as ctx:
            parse_text(text)
        self.assertEqual(ctx.exception.reason, "failed to match rule line")
        self.assertEqual(ctx.exception.line, row)
        self.assertEqual(ctx.exception.line_number, 4)

    def test_blank_line_in_chain_state(self):
        """Two blank lines in a row: the second one is not a chain header."""
        text = SCENARIO_LISTING.replace("\n\nChain LOGGING", "\n\n\nChain LOGGING")
        with self.assertRaises(ListingSyntaxError) as ctx:
            parse_text(text)
        self.assertEqual(ctx.exception.line, "")
        self.assertEqual(ctx.exception.line_number, 5)

    def test_source_error_propagates(self):
        """I/O errors from the line source reach the caller unchanged."""
        failure = OSError("device went away")

        class FailingSource:
            def __init__(self):
                self.lines = ["Chain A (1 references)\n"]

            def read_line(self):
                if self.lines:
                    return self.lines.pop(0)
                raise failure

        with self.assertRaises(OSError) as ctx:
            parse(FailingSource())
        self.assertIs(ctx.exception, failure)


class TestEntryPoints(unittest.TestCase):
    """Test the different ways of supplying a listing."""

    def test_parse_iterable_source(self):
        table = parse(IterLineReader(SCENARIO_LISTING.splitlines(keepends=True)))
        self.assertEqual(table.chain_names(), ["INPUT", "LOGGING"])

    def test_parse_stream(self):
        table = parse_stream(io.StringIO(FILTER_LISTING))
        self.assertEqual(len(table), 4)

    def test_parse_file(self):
        with tempfile.NamedTemporaryFile('w', suffix='.txt', delete=False) as f:
            f.write(FILTER_LISTING)
            path = f.name
        try:
            self.assertEqual(parse_file(path), parse_text(FILTER_LISTING))
        finally:
            os.unlink(path)

    def test_result_type(self):
        table = parse_text(SCENARIO_LISTING)
        self.assertIsInstance(table, Table)
        self.assertIsInstance(table.chains[0], Chain)


if __name__ == '__main__':
    unittest.main()
