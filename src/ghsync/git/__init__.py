"""Subprocess access to git and read-only repository probes."""
