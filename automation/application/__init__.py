"""Application layer: DTOs, ports (protocols) and engine services without infrastructure."""
