"""Command-line interface for iam-policy-eval.

Validates policy documents and evaluates simulated requests against them.
"""

from .main import cli, main

__all__ = ["cli", "main"]
