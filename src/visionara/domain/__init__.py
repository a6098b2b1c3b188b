"""Domain entities and services for identity consistency."""
