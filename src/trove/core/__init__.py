"""Core configuration and logging for Trove."""
