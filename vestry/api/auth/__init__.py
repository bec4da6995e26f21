"""Authentication module: bearer token verification."""

from vestry.api.auth.jwt import verify_token

__all__ = ["verify_token"]
