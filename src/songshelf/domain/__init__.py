"""Domain layer: entities, value objects and exceptions of the music library."""
