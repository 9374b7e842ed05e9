"""Domain layer: enums, exceptions and workflow value objects (no infrastructure)."""
