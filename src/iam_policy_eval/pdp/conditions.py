"""Condition evaluation - match request context values against a Condition block.

A Condition block is a conjunction: every operator/key entry must hold.

Per entry:
- Positive operators: a context value satisfies the entry when it matches
  at least one expected value.
- Negated operators (StringNotEquals, NotIpAddress, ...): a context value
  satisfies the entry when it matches none of the expected values.
- A context value that cannot be parsed for a typed operator (a non-number
  under NumericEquals) matches nothing and satisfies nothing.

Multi-valued keys:
- Plain operators: positive operators need any value to satisfy, negated
  operators need every value to satisfy, so a negated operator is the exact
  complement of its positive form.
- ForAllValues: every value must satisfy; true when the key is absent.
- ForAnyValue: at least one value must satisfy; false when the key is absent.

Absent keys:
- Plain operator: false.
- IfExists: true.
- Null: tests presence ("true" means the key must be absent).

Set operators combined with negated operators are not evaluated: they raise
UnsupportedConditionError rather than producing a guess.
"""

from __future__ import annotations

import base64
import binascii
import ipaddress
import re
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from iam_policy_eval.constants import WILDCARD
from iam_policy_eval.context.request import RequestContext
from iam_policy_eval.exceptions import UnsupportedConditionError
from iam_policy_eval.pdp.matcher import glob_match, match_arn
from iam_policy_eval.pdp.policy import (
    Comparison,
    ConditionBlock,
    ConditionEntry,
    ConditionOperator,
    OperatorFamily,
    OperatorKey,
    Quantifier,
)
from iam_policy_eval.utils.arn import parse_arn

__all__ = [
    "check_supported",
    "evaluate_condition_block",
    "evaluate_entry",
    "operator_matches",
    "parse_binary",
    "parse_bool",
    "parse_date",
    "parse_ip_address",
    "parse_ip_network",
    "parse_number",
    "parse_typed_value",
]

_EPOCH_PATTERN = re.compile(r"-?\d+(\.\d+)?")

IpNetwork = ipaddress.IPv4Network | ipaddress.IPv6Network
IpAddress = ipaddress.IPv4Address | ipaddress.IPv6Address


# =============================================================================
# Value parsing (None = not a value of this type)
# =============================================================================


def parse_number(text: str) -> Decimal | None:
    """Parse a decimal number; NaN, infinities and digit separators are rejected."""
    if "_" in text:
        return None
    try:
        number = Decimal(text.strip())
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def parse_date(text: str) -> datetime | None:
    """Parse an ISO 8601 timestamp with timezone, or epoch seconds."""
    text = text.strip()
    if _EPOCH_PATTERN.fullmatch(text):
        try:
            return datetime.fromtimestamp(float(text), tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    # Timestamps without a timezone are ambiguous
    if parsed.tzinfo is None:
        return None
    return parsed


def parse_bool(text: str) -> bool | None:
    """Parse "true" or "false" (any letter case)."""
    lowered = text.strip().lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    return None


def parse_binary(text: str) -> bytes | None:
    """Decode base64, tolerating missing or partial padding."""
    stripped = text.strip().rstrip("=")
    if len(stripped) % 4 == 1:
        return None
    padded = stripped + "=" * (-len(stripped) % 4)
    try:
        return base64.b64decode(padded, validate=True)
    except (binascii.Error, ValueError):
        return None


def parse_ip_address(text: str) -> IpAddress | None:
    """Parse a single IPv4 or IPv6 address (no prefix length)."""
    try:
        return ipaddress.ip_address(text.strip())
    except ValueError:
        return None


def parse_ip_network(text: str) -> IpNetwork | None:
    """Parse a CIDR block; a bare address becomes a /32 or /128."""
    try:
        return ipaddress.ip_network(text.strip(), strict=False)
    except ValueError:
        return None


def parse_typed_value(family: OperatorFamily, text: str, *, expected: bool) -> Any | None:
    """Parse a condition value for an operator family.

    Args:
        family: Operator family.
        text: Raw value.
        expected: True for values written in the policy, False for
            request context values. IpAddress expects CIDR blocks in the
            policy and plain addresses in the context.

    Returns:
        The parsed value, or None if text is not valid for the family.
    """
    match family:
        case OperatorFamily.STRING | OperatorFamily.STRING_IGNORE_CASE | OperatorFamily.STRING_LIKE:
            return text
        case OperatorFamily.NUMERIC:
            return parse_number(text)
        case OperatorFamily.DATE:
            return parse_date(text)
        case OperatorFamily.BOOL | OperatorFamily.NULL:
            return parse_bool(text)
        case OperatorFamily.BINARY:
            return parse_binary(text)
        case OperatorFamily.IP_ADDRESS:
            return parse_ip_network(text) if expected else parse_ip_address(text)
        case OperatorFamily.ARN:
            # Policy side may be a wildcard pattern; only its shape is checked
            return parse_arn(text)


# =============================================================================
# Comparison
# =============================================================================


def _compare(comparison: Comparison, actual: Any, expected: Any) -> bool:
    match comparison:
        case Comparison.EQ:
            return actual == expected
        case Comparison.LT:
            return actual < expected
        case Comparison.LE:
            return actual <= expected
        case Comparison.GT:
            return actual > expected
        case Comparison.GE:
            return actual >= expected


def _positive_match(operator: ConditionOperator, actual: Any, expected_text: str) -> bool:
    """Apply the positive form of an operator to one parsed context value."""
    family = operator.family
    if family is OperatorFamily.ARN and expected_text == WILDCARD:
        return True
    expected = parse_typed_value(family, expected_text, expected=True)
    if expected is None:
        return False

    match family:
        case OperatorFamily.STRING:
            return actual == expected
        case OperatorFamily.STRING_IGNORE_CASE:
            return actual.casefold() == expected.casefold()
        case OperatorFamily.STRING_LIKE:
            return glob_match(expected, actual)
        case OperatorFamily.NUMERIC | OperatorFamily.DATE:
            return _compare(operator.comparison, actual, expected)
        case OperatorFamily.BOOL | OperatorFamily.BINARY:
            return actual == expected
        case OperatorFamily.IP_ADDRESS:
            return actual in expected
        case OperatorFamily.ARN:
            return match_arn(expected, actual)
        case OperatorFamily.NULL:
            raise ValueError("Null is evaluated on key presence, not values")


def operator_matches(operator: ConditionOperator, value: str, expected: tuple[str, ...]) -> bool:
    """Check one context value against an operator and its expected values.

    Args:
        operator: Base operator (not Null).
        value: One context value.
        expected: Expected values from the policy.

    Returns:
        For positive operators, True if any expected value matches.
        For negated operators, True if the value parses and no expected
        value matches the positive form.
    """
    actual = parse_typed_value(operator.family, value, expected=False)
    if actual is None:
        return False
    hit = any(_positive_match(operator, actual, target) for target in expected)
    return not hit if operator.negated else hit


# =============================================================================
# Entries and blocks
# =============================================================================


def check_supported(operator: OperatorKey) -> None:
    """Raise for operator forms the evaluator cannot decide faithfully.

    Raises:
        UnsupportedConditionError: For set operators combined with negated
            operators (e.g. ForAllValues:StringNotEquals).
    """
    if operator.quantifier is not None and operator.base.negated:
        raise UnsupportedConditionError(
            operator.raw,
            "set operators cannot be combined with negated operators",
        )


def _null_matches(entry: ConditionEntry, values: tuple[str, ...] | None) -> bool:
    """Null: "true" requires the key to be absent, "false" requires it present."""
    return (not values) == parse_bool(entry.values[0])


def evaluate_entry(entry: ConditionEntry, context: RequestContext) -> bool:
    """Evaluate a single operator/key constraint.

    Args:
        entry: Condition entry.
        context: Request context.

    Returns:
        True if the constraint holds.

    Raises:
        UnsupportedConditionError: For unsupported operator forms.
    """
    operator = entry.operator
    check_supported(operator)
    values = context.get_values(entry.key)

    if operator.base is ConditionOperator.NULL:
        return _null_matches(entry, values)

    if not values:
        if operator.if_exists:
            return True
        # ForAllValues over an empty set is vacuously true
        return operator.quantifier is Quantifier.FOR_ALL_VALUES

    def satisfies(value: str) -> bool:
        return operator_matches(operator.base, value, entry.values)

    if operator.quantifier is Quantifier.FOR_ALL_VALUES:
        return all(satisfies(value) for value in values)
    if operator.quantifier is Quantifier.FOR_ANY_VALUE:
        return any(satisfies(value) for value in values)
    if operator.base.negated:
        return all(satisfies(value) for value in values)
    return any(satisfies(value) for value in values)


def evaluate_condition_block(block: ConditionBlock, context: RequestContext) -> bool:
    """Evaluate a Condition block (AND across all entries).

    Every entry is checked for support before any is evaluated, so an
    unsupported operator raises regardless of where it appears in the block.

    Args:
        block: Condition block of a statement.
        context: Request context.

    Returns:
        True if every entry holds.

    Raises:
        UnsupportedConditionError: If any entry uses an unsupported form.
    """
    for entry in block.entries:
        check_supported(entry.operator)
    return all(evaluate_entry(entry, context) for entry in block.entries)
