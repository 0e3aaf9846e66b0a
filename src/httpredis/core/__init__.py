"""Logging helpers and in-process probe counters."""
