"""
Market data feed module.

Streaming trade connection for the active instrument and request/response
snapshots used for refreshes and background alert polling.
"""
