"""Social service core: configuration tables, peer service routing, user lookups and storage operations."""

__version__ = "0.1.0"