"""iam-policy-eval: offline evaluator for AWS IAM policy documents.

Parses an IAM policy document and decides whether it allows or denies
a simulated request (action, resource, optional principal, context keys).

See iam_policy_eval.pdp for the evaluation engine.
"""

__version__ = "0.1.0"
