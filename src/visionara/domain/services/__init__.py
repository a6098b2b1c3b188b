"""Domain services for Visionara."""
