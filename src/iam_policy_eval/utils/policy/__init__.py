"""Policy and request-context file loading."""

from iam_policy_eval.utils.policy.policy_helpers import load_context_file, load_policy

__all__ = [
    "load_context_file",
    "load_policy",
]
