"""Encrypted two-party chat service for the flatshare marketplace."""

__version__ = "0.1.0"
