"""
Event module.

Typed events published by the supervisor, bounded drop-oldest channels that
carry them to consumers, and the display throttle.
"""
