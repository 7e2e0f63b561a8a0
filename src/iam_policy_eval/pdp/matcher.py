"""Pattern matching for actions, resources and principals.

IAM wildcards:
- ``*`` matches any sequence of characters, including the empty one
- ``?`` matches exactly one character
There are no character classes and no escaping. Patterns always match the
whole string.

Case rules:
- Actions: case-insensitive ("S3:GETOBJECT" matches "s3:Get*")
- Resources: case-sensitive, except partition and service when the
  segment-wise ARN fallback is used
- Principals: case-sensitive

Not* elements negate the whole pattern set: NotAction ["a", "b"] applies
when the action matches neither "a" nor "b".
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from functools import lru_cache

from iam_policy_eval.constants import WILDCARD
from iam_policy_eval.context.request import PrincipalDescriptor
from iam_policy_eval.pdp.policy import PrincipalBlock, Statement
from iam_policy_eval.utils.arn import Arn, account_root_arn, is_account_id, parse_arn

__all__ = [
    "action_matches",
    "glob_match",
    "match_action",
    "match_arn",
    "match_principal",
    "match_resource",
    "principal_matches",
    "resource_matches",
]


@lru_cache(maxsize=1024)
def _compile_glob(pattern: str, case_sensitive: bool) -> re.Pattern[str]:
    """Translate an IAM wildcard pattern to a compiled regex."""
    parts: list[str] = []
    for char in pattern:
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    flags = re.DOTALL if case_sensitive else re.DOTALL | re.IGNORECASE
    return re.compile("".join(parts), flags)


def glob_match(pattern: str, candidate: str, *, case_sensitive: bool = True) -> bool:
    """Match candidate against an IAM wildcard pattern (whole string).

    Args:
        pattern: Pattern with optional * and ? wildcards.
        candidate: String to test.
        case_sensitive: Whether letter case must match.

    Returns:
        True if the whole candidate matches the pattern.
    """
    if "*" not in pattern and "?" not in pattern:
        if case_sensitive:
            return pattern == candidate
        return pattern.lower() == candidate.lower()
    return _compile_glob(pattern, case_sensitive).fullmatch(candidate) is not None


def _match_any(patterns: Iterable[str], candidate: str, matcher: Callable[[str, str], bool]) -> bool:
    """Return True if any pattern matches (OR logic)."""
    return any(matcher(pattern, candidate) for pattern in patterns)


# =============================================================================
# Actions
# =============================================================================


def match_action(pattern: str, candidate: str) -> bool:
    """Match an action ("service:Operation") against an action pattern.

    Case-insensitive, whole-string wildcard match.
    """
    return glob_match(pattern, candidate, case_sensitive=False)


def action_matches(statement: Statement, action: str) -> bool:
    """Check the statement's Action or NotAction element against an action."""
    if statement.action is not None:
        return _match_any(statement.action, action, match_action)
    assert statement.not_action is not None
    return not _match_any(statement.not_action, action, match_action)


# =============================================================================
# Resources
# =============================================================================


def match_arn(pattern: Arn, candidate: Arn, *, fold_service_case: bool = False) -> bool:
    """Match an ARN segment by segment.

    Wildcards never span the structural separators between segments. The
    resource segment is matched as a whole and may contain ":" and "/".

    Args:
        pattern: Parsed ARN pattern.
        candidate: Parsed ARN to test.
        fold_service_case: Compare partition and service case-insensitively.

    Returns:
        True if every segment matches.
    """
    return (
        glob_match(pattern.partition, candidate.partition, case_sensitive=not fold_service_case)
        and glob_match(pattern.service, candidate.service, case_sensitive=not fold_service_case)
        and glob_match(pattern.region, candidate.region)
        and glob_match(pattern.account, candidate.account)
        and glob_match(pattern.resource, candidate.resource)
    )


def match_resource(pattern: str, candidate: str) -> bool:
    """Match a resource ARN against a resource pattern.

    First a case-sensitive wildcard match over the full string. If that
    fails and both sides are ARNs, a segment-wise match in which partition
    and service names compare case-insensitively.

    "*" matches any resource, including non-ARN forms.
    """
    if pattern == WILDCARD:
        return True
    if glob_match(pattern, candidate):
        return True

    pattern_arn = parse_arn(pattern)
    candidate_arn = parse_arn(candidate)
    if pattern_arn is None or candidate_arn is None:
        return False
    return match_arn(pattern_arn, candidate_arn, fold_service_case=True)


def resource_matches(statement: Statement, resource: str) -> bool:
    """Check the statement's Resource or NotResource element against a resource."""
    if statement.resource is not None:
        return _match_any(statement.resource, resource, match_resource)
    assert statement.not_resource is not None
    return not _match_any(statement.not_resource, resource, match_resource)


# =============================================================================
# Principals
# =============================================================================


def _match_aws_principal(pattern: str, candidate: str) -> bool:
    """Match an AWS principal entry against a candidate ARN or account ID.

    A bare account ID stands for the account root, and as a pattern it
    covers every principal of that account.
    """
    if pattern == WILDCARD:
        return True

    if is_account_id(candidate):
        candidate = account_root_arn(candidate)
    candidate_arn = parse_arn(candidate)
    if candidate_arn is None:
        return False

    if is_account_id(pattern):
        return candidate_arn.account == pattern
    return glob_match(pattern, candidate)


def match_principal(block: PrincipalBlock, candidate: PrincipalDescriptor) -> bool:
    """Match a request principal against a Principal block.

    Args:
        block: Principal or NotPrincipal element of a statement.
        candidate: The requesting principal.

    Returns:
        True if any entry of the block matches the candidate.
    """
    if block.wildcard:
        return True

    # "AWS": "*" means every principal, whatever its type
    if WILDCARD in block.aws:
        return True

    if candidate.kind == "AWS":
        return _match_any(block.aws, candidate.value, _match_aws_principal)
    if candidate.kind == "CanonicalUser":
        return _match_any(block.canonical_user, candidate.value, glob_match)
    if candidate.kind == "Federated":
        return _match_any(block.federated, candidate.value, glob_match)
    if candidate.kind == "Service":
        return _match_any(block.service, candidate.value, glob_match)
    return False


def principal_matches(statement: Statement, candidate: PrincipalDescriptor) -> bool:
    """Check the statement's Principal or NotPrincipal element against a principal.

    Statements with neither element match every principal.
    """
    if statement.principal is not None:
        return match_principal(statement.principal, candidate)
    if statement.not_principal is not None:
        return not match_principal(statement.not_principal, candidate)
    return True
