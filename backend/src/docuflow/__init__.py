"""Docuflow backend - multi-tenant document collection service."""

__version__ = "0.1.0"
