"""Context key parsing for CLI arguments and context files.

Builds the key → values maps that become RequestContext.context_keys.
Key names are lower-cased here too, so merging sources never produces two
spellings of the same key.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from iam_policy_eval.context.request import ContextValues, normalize_context_keys
from iam_policy_eval.exceptions import ArgumentError

__all__ = [
    "merge_context",
    "parse_context_pairs",
    "parse_context_tree",
]


def parse_context_pairs(pairs: Iterable[str]) -> ContextValues:
    """Parse KEY=VALUE arguments into context keys.

    Repeating a key adds another value to it. The value may be empty and
    may itself contain "=".

    Args:
        pairs: Raw KEY=VALUE strings.

    Returns:
        Lower-cased key names mapped to their values.

    Raises:
        ArgumentError: If a pair has no "=" or an empty key.
    """
    context: ContextValues = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ArgumentError(f"Invalid context value {pair!r}, expected KEY=VALUE")
        lowered = key.lower()
        context[lowered] = context.get(lowered, ()) + (value,)
    return context


def _section(tree: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = tree.get(name, {})
    if not isinstance(section, Mapping):
        raise ValueError(f"'{name}' must be an object")
    return section


def parse_context_tree(tree: Any, resource: str | None = None) -> ContextValues:
    """Extract the context keys that apply to a resource.

    The tree has the shape::

        {
            "global": {"aws:SourceIp": "10.0.0.1"},
            "resources": {
                "arn:aws:s3:::bucket/key": {"s3:ExistingObjectTag/team": "ops"}
            }
        }

    Global keys always apply; a resource section applies only when its ARN
    equals the requested resource exactly. Resource values follow global
    values for the same key.

    Args:
        tree: Decoded JSON.
        resource: Requested resource, or None for global keys only.

    Returns:
        Lower-cased key names mapped to their values.

    Raises:
        ValueError: If the tree does not have the shape above.
    """
    if not isinstance(tree, Mapping):
        raise ValueError("Context file must contain a JSON object")
    unknown = set(tree) - {"global", "resources"}
    if unknown:
        raise ValueError(f"Unknown context file sections: {', '.join(sorted(unknown))}")

    context = normalize_context_keys(_section(tree, "global"))

    resources = _section(tree, "resources")
    if resource is not None and resource in resources:
        scoped = resources[resource]
        if not isinstance(scoped, Mapping):
            raise ValueError(f"Context for resource {resource!r} must be an object")
        context = merge_context(context, normalize_context_keys(scoped))
    return context


def merge_context(*sources: Mapping[str, tuple[str, ...]]) -> ContextValues:
    """Merge context key maps, appending values of keys that repeat.

    Args:
        sources: Normalized maps, lowest precedence first.

    Returns:
        A new merged map.
    """
    merged: ContextValues = {}
    for source in sources:
        for key, values in source.items():
            lowered = key.lower()
            merged[lowered] = merged.get(lowered, ()) + tuple(values)
    return merged
