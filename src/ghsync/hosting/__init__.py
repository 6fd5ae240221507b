"""Hosting provider integration through its command line tool."""
