"""HTTP API for Visionara."""
