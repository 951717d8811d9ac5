"""
Utility functions module.

Cancellation tokens and task scopes for cooperative asyncio shutdown, and
display formatting shared by the console renderer and notifications.
"""
