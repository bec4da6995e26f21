"""VESTRY API package."""
