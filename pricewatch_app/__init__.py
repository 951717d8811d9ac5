"""
PriceWatch - Live Price Tracking and Alerting Engine

Streams live trade prices for a small set of user-selected instruments,
polls the ones that are not streamed, and raises notifications when
configured price thresholds are crossed.
"""

__version__ = "0.1.0"
__author__ = "PriceWatch Team"
