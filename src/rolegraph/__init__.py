"""Rolegraph: authorization and session core of an admin console."""

__version__ = "0.1.0"
