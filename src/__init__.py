#!/usr/bin/env -S python3 -B -u
"""
iptparse - firewall rule listing parser

Parses the verbose numeric listing printed by
``iptables [-t <table>] -L -n -v -x [--line-numbers]`` into a queryable
Table/Chain/Rule tree.
"""

__version__ = '1.0.0'
__author__ = 'Network Analysis Tool'
__license__ = 'MIT'

# Package metadata
__all__ = [
    'core',
    'scripts',
]
