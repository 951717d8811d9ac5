"""
Market data module.

Instrument identity, price observations, the tracked instrument list and
parsers for feed and snapshot payloads.
"""
