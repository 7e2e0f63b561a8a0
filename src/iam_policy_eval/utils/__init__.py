"""Shared utilities: ARN parsing, file loading, logging setup."""
