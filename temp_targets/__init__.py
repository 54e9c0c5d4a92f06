"""Temporary glucose target overrides for an automated insulin-dosing loop."""

__version__ = "0.1.0"
