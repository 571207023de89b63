"""Argument marshaling and dispatch engine for task workers."""

__version__ = "0.1.0"
