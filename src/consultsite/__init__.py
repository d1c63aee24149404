"""Content pipeline and contact intake backend for the consultancy website."""

__version__ = "0.1.0"
