"""
Command line tools for iptparse.
"""
