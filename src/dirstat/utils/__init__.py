"""Shared utilities: formatting and logging setup."""
