"""Monitoring helpers for docgate."""
