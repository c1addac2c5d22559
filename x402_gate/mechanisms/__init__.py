"""Payment scheme implementations."""
