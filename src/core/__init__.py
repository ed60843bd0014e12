"""
Core package: listing grammar, parser state machine and result tree.
"""

from iptparse.core.exceptions import (
    IptparseError, ListingError, ListingSyntaxError, ListingValueError,
    InternalConsistencyError
)
from iptparse.core.line_source import BufLineReader, IterLineReader, LineSource
from iptparse.core.models import Chain, Rule, Table
from iptparse.core.parser import (
    END_OF_INPUT, ListingParser, ParserState, parse, parse_file, parse_stream, parse_text
)

__all__ = [
    'IptparseError', 'ListingError', 'ListingSyntaxError', 'ListingValueError',
    'InternalConsistencyError',
    'BufLineReader', 'IterLineReader', 'LineSource',
    'Chain', 'Rule', 'Table',
    'END_OF_INPUT', 'ListingParser', 'ParserState',
    'parse', 'parse_file', 'parse_stream', 'parse_text',
]
