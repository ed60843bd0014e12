"""
Grammar matchers for the verbose rule listing produced by

    iptables [-t <table>] -L -n -v -x [--line-numbers]

Each matcher recognizes exactly one syntactic construct and returns the
extracted fields, or None when the line is not that construct. Counters
are returned as validated integers; a counter token that is not an exact
non-negative 64-bit decimal raises ListingValueError.
"""

import re
from dataclasses import dataclass
from typing import Optional

from iptparse.core.exceptions import ListingValueError


MAX_COUNTER = 2 ** 63 - 1

_DIGITS_RE = re.compile(r'[0-9]+')

BUILTIN_CHAIN_RE = re.compile(
    r'^Chain (?P<chain>[^ ]+) \(policy (?P<policy>[^ ]+) '
    r'(?P<packets>[0-9]+) packets, (?P<bytes>[0-9]+) bytes\)$'
)
USER_CHAIN_RE = re.compile(r'^Chain (?P<chain>[^ ]+) \((?P<refs>[0-9]+) references\)$')

COLUMN_HEADER_RE = re.compile(
    r'^ *(?P<num>num +)?pkts +bytes +target +prot +opt +in +out +source +destination$'
)

# Everything after the destination column is the match extension text,
# except a trailing "/* ... */" block which is the rule comment.
_RULE_COLUMNS = (
    r'(?P<pkts>[^ ]+) +(?P<bytes>[^ ]+) +(?P<target>[^ ]+) +(?P<prot>[^ ]+) +'
    r'(?P<opt>[^ ]+) +(?P<in>[^ ]+) +(?P<out>[^ ]+) +(?P<source>[^ ]+) +'
    r'(?P<destination>[^ ]+) *(?P<match>.*?) *(?:/\* (?P<comment>.*?) \*/)?$'
)
NUMBERED_RULE_RE = re.compile(r'^ *(?P<num>[0-9]+) +' + _RULE_COLUMNS)
RULE_RE = re.compile(r'^ *' + _RULE_COLUMNS)


@dataclass(frozen=True)
class ChainHeader:
    name: str
    policy: Optional[str] = None
    packet_count: Optional[int] = None
    byte_count: Optional[int] = None
    reference_count: Optional[int] = None

    @property
    def is_builtin(self) -> bool:
        return self.policy is not None


@dataclass(frozen=True)
class ColumnHeader:
    line_numbers: bool


@dataclass(frozen=True)
class RuleRow:
    packet_count: int
    byte_count: int
    target: str
    protocol: str
    option: str
    in_interface: str
    out_interface: str
    source: str
    destination: str
    match: str
    comment: str


def parse_counter(text: str, field: str, line: Optional[str] = None) -> int:
    """
    Convert a counter token to int.

    Only plain decimal digits are accepted (no sign, no separators, no
    unit suffix) and the value must fit a signed 64-bit integer.

    Raises:
        ListingValueError: if the token is not a valid counter
    """
    if not _DIGITS_RE.fullmatch(text):
        raise ListingValueError(field, text, line)
    value = int(text)
    if value > MAX_COUNTER:
        raise ListingValueError(field, text, line, details={"maximum": MAX_COUNTER})
    return value


def match_builtin_chain(line: str) -> Optional[ChainHeader]:
    """Match 'Chain <name> (policy <policy> <packets> packets, <bytes> bytes)'."""
    m = BUILTIN_CHAIN_RE.match(line)
    if m is None:
        return None
    return ChainHeader(
        name=m.group('chain'),
        policy=m.group('policy'),
        packet_count=parse_counter(m.group('packets'), 'packets', line),
        byte_count=parse_counter(m.group('bytes'), 'bytes', line),
    )


def match_user_chain(line: str) -> Optional[ChainHeader]:
    """Match 'Chain <name> (<N> references)'."""
    m = USER_CHAIN_RE.match(line)
    if m is None:
        return None
    return ChainHeader(
        name=m.group('chain'),
        reference_count=parse_counter(m.group('refs'), 'references', line),
    )


def match_chain_header(line: str) -> Optional[ChainHeader]:
    """Match either chain header form; the two forms never overlap."""
    header = match_builtin_chain(line)
    if header is None:
        header = match_user_chain(line)
    return header


def match_column_header(line: str) -> Optional[ColumnHeader]:
    """Match the column title line, with or without the 'num' column."""
    m = COLUMN_HEADER_RE.match(line)
    if m is None:
        return None
    return ColumnHeader(line_numbers=m.group('num') is not None)


def match_rule_row(line: str, line_numbers: bool = True) -> Optional[RuleRow]:
    """
    Match a rule row.

    Args:
        line: Line with trailing whitespace removed
        line_numbers: Whether rows start with the rule index column, as
            announced by the preceding column header. The index itself is
            discarded.

    Returns:
        RuleRow, or None if the line does not have the rule columns

    Raises:
        ListingValueError: if the packet or byte counter is not a valid counter
    """
    if not line:
        return None
    m = (NUMBERED_RULE_RE if line_numbers else RULE_RE).match(line)
    if m is None:
        return None
    return RuleRow(
        packet_count=parse_counter(m.group('pkts'), 'packets', line),
        byte_count=parse_counter(m.group('bytes'), 'bytes', line),
        target=m.group('target'),
        protocol=m.group('prot'),
        option=m.group('opt'),
        in_interface=m.group('in'),
        out_interface=m.group('out'),
        source=m.group('source'),
        destination=m.group('destination'),
        match=m.group('match'),
        comment=m.group('comment') or '',
    )
