"""Domain layer: entities, value objects and exceptions. No framework imports."""
