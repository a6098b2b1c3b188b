"""External identity provider clients."""
