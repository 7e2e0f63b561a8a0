"""Logging setup for iam-policy-eval."""

from iam_policy_eval.utils.logging.logger_setup import JsonLinesFormatter, setup_system_logger

__all__ = [
    "JsonLinesFormatter",
    "setup_system_logger",
]
