"""
Session state module.

Holds the tracking session (instrument list, alert registry, last price
cache) and the connection and supervisor state enums.
"""
