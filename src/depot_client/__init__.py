"""Depot Client - session-aware client for the depot management backend."""

__version__ = "0.1.0"
