"""Infrastructure adapters for Visionara."""
