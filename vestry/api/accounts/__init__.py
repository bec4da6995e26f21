"""Account management module."""
