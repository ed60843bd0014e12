#!/usr/bin/env -S python3 -B -u
"""
Dump a parsed rule listing.

Reads the output of ``iptables [-t <table>] -L -n -v -x [--line-numbers]``
from a file or standard input and prints the parsed tree as debug text,
JSON, or a per-chain summary.
"""

import argparse
import json
import sys

from iptparse.core.config_loader import load_iptparse_config, merge_config
from iptparse.core.exceptions import ChainNotFoundError, ErrorCode, ErrorHandler, InputDecodeError
from iptparse.core.line_source import open_line_source
from iptparse.core.parser import parse
from iptparse.core.structured_logging import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Parse a verbose numeric iptables listing and print the result',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Configuration File Support:
  Options can be configured in a YAML file. Location precedence:
  1. $IPTPARSE_CONF environment variable
  2. ~/iptparse.yaml (user's home directory)
  3. ./iptparse.yaml (current directory)

  Command line arguments override configuration file values.

Exit codes:
  0: Listing parsed successfully
  2: Requested chain not found
  10: Malformed listing or undecodable input
  11: Configuration error
  12: Input could not be read
  15: Internal error

Examples:
  iptables -L -n -v -x --line-numbers | %(prog)s
  %(prog)s filter.txt -j                   # JSON output
  %(prog)s filter.txt --summary            # One line per chain
  %(prog)s filter.txt -c INPUT -vv         # Single chain, debug logging
        """)
    parser.add_argument('file', nargs='?', default='-',
                        help="Listing file to parse ('-' for standard input, the default)")
    parser.add_argument('-v', '--verbose', action='count', default=0,
                        help='Enable verbose output (-v info, -vv debug, -vvv trace)')
    output = parser.add_mutually_exclusive_group()
    output.add_argument('-j', '--json', action='store_true',
                        help='Output the parsed table in JSON format')
    output.add_argument('--summary', action='store_true',
                        help='Output one summary line per chain')
    parser.add_argument('-c', '--chain',
                        help='Only output the named chain')
    parser.add_argument('--encoding',
                        help='Text encoding of the input file (default: utf-8)')
    return parser


@ErrorHandler.wrap_main
def run(args) -> int:
    config = merge_config(load_iptparse_config(), args)
    verbose_level = config['verbose_level']
    args.verbose = verbose_level
    setup_logging()

    try:
        with open_line_source(args.file, config['encoding']) as source:
            table = parse(source, verbose_level)
    except UnicodeDecodeError as e:
        raise InputDecodeError(args.file, config['encoding'], cause=e) from e

    chains = table.chains
    if args.chain:
        chain = table.get_chain(args.chain)
        if chain is None:
            raise ChainNotFoundError(args.chain, available_chains=table.chain_names())
        chains = [chain]

    output_format = config['output_format']
    if output_format == 'json':
        if args.chain:
            data = chains[0].to_dict()
        else:
            data = table.to_dict()
        print(json.dumps(data, indent=config['json_indent']))
    elif output_format == 'summary':
        for chain in chains:
            print(chain.summary())
    elif args.chain:
        print(chains[0].render())
    else:
        print(table.render(), end='')

    return ErrorCode.SUCCESS


def main(argv=None) -> int:
    """Main entry point for the listing dump command."""
    args = build_parser().parse_args(argv)
    return int(run(args))


if __name__ == '__main__':
    sys.exit(main())
