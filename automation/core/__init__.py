"""Core wiring: settings, lifespan, exception handlers, rate limits."""
