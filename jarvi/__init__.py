"""
Jarvi Delegation Core - natural-language scheduling interpretation.

Turns free-form chat requests into classified intents, ordered event or
task descriptors, and delegation envelopes handled by specialized
executors (calendar, tasks).
"""

__version__ = "0.1.0"
