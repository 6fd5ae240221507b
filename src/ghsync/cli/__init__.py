"""Command line front end for ghsync."""
