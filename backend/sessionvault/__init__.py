"""Sessionvault - access and refresh token service."""

__version__ = "0.1.0"
