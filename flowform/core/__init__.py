"""Core configuration, errors, and request dependencies."""
