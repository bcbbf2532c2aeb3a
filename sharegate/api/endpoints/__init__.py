"""Auxiliary HTTP endpoints (outside the ShareX mount)."""
