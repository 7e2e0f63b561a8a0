"""Request context - what a policy is evaluated against.

Structure:
    request.py        - RequestContext and PrincipalDescriptor models
    parsing.py        - Build context key maps from CLI pairs and JSON trees
"""

from iam_policy_eval.context.parsing import merge_context, parse_context_pairs, parse_context_tree
from iam_policy_eval.context.request import (
    ContextValues,
    PrincipalDescriptor,
    PrincipalKind,
    RequestContext,
    normalize_context_keys,
)

__all__ = [
    "ContextValues",
    "PrincipalDescriptor",
    "PrincipalKind",
    "RequestContext",
    "merge_context",
    "normalize_context_keys",
    "parse_context_pairs",
    "parse_context_tree",
]
