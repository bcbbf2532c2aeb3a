"""sharegate: HTTP gateway for ShareX-style uploads with pluggable storage."""

__version__ = "1.0.0"
