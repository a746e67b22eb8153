"""Core walk engine and configuration."""
