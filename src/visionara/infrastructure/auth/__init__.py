"""Authentication infrastructure: code hashing and session validation."""
