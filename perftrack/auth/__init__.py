"""Authentication boundary: bearer token verification."""
