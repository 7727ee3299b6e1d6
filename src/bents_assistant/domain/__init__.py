"""Domain layer: entities and service interfaces."""
