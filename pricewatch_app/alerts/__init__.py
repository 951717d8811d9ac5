"""
Price alert module.

Alert definitions, the registry that owns them and the engine that detects
threshold crossings between consecutive observations.
"""
