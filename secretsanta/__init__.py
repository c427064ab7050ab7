"""Seeded Secret Santa draws with audited email dispatch."""

__version__ = "0.1.0"
