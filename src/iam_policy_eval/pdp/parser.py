"""Policy parsing - build a PolicyDocument from a generic JSON tree.

The input is the result of json.load() (dicts, lists, strings, numbers,
booleans). Every IAM grammar rule is checked here; downstream code only
sees normalized models.

Errors (all ParseError subclasses, see exceptions.py):
- SchemaViolation: wrong type, unknown element, bad literal or value
- InvalidFieldCombination: Action with NotAction, Resource with NotResource,
  Principal with NotPrincipal
- MissingRequiredField: Statement, Effect, Action/NotAction, Resource/NotResource
- UnsupportedOperator: Null combined with IfExists or a set operator
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from iam_policy_eval.constants import (
    DEFAULT_POLICY_VERSION,
    EFFECTS,
    LOGGER_NAME,
    POLICY_ELEMENTS,
    PRINCIPAL_TYPES,
    STATEMENT_ELEMENTS,
    SUPPORTED_POLICY_VERSIONS,
    WILDCARD,
)
from iam_policy_eval.exceptions import (
    InvalidFieldCombination,
    MissingRequiredField,
    SchemaViolation,
    UnsupportedOperator,
)
from iam_policy_eval.pdp.conditions import parse_typed_value
from iam_policy_eval.pdp.global_keys import operator_type_hint
from iam_policy_eval.pdp.policy import (
    ConditionBlock,
    ConditionEntry,
    ConditionOperator,
    OperatorFamily,
    OperatorKey,
    PolicyDocument,
    PrincipalBlock,
    Statement,
)
from iam_policy_eval.utils.arn import is_account_id, looks_like_arn

__all__ = [
    "parse_operator_key",
    "parse_policy",
]

_logger = logging.getLogger(f"{LOGGER_NAME}.pdp.parser")


def parse_policy(tree: Any) -> PolicyDocument:
    """Parse a policy document tree.

    Args:
        tree: Decoded JSON policy document.

    Returns:
        PolicyDocument with normalized statements.

    Raises:
        ParseError: If the document violates the policy grammar.
    """
    if not isinstance(tree, dict):
        raise SchemaViolation("Policy document must be a JSON object")

    unknown = sorted(set(tree) - POLICY_ELEMENTS)
    if unknown:
        raise SchemaViolation(f"Unknown policy element(s): {', '.join(unknown)}")

    version = tree.get("Version", DEFAULT_POLICY_VERSION)
    if not isinstance(version, str):
        raise SchemaViolation("Version must be a string", field="Version")
    if version not in SUPPORTED_POLICY_VERSIONS:
        raise SchemaViolation(
            f"Unsupported Version {version!r} (expected one of {', '.join(sorted(SUPPORTED_POLICY_VERSIONS))})",
            field="Version",
        )

    policy_id = tree.get("Id")
    if policy_id is not None and not isinstance(policy_id, str):
        raise SchemaViolation("Id must be a string", field="Id")

    if "Statement" not in tree:
        raise MissingRequiredField("Statement is required", field="Statement")
    raw_statements = tree["Statement"]
    if isinstance(raw_statements, dict):
        raw_statements = [raw_statements]
    elif not isinstance(raw_statements, list):
        raise SchemaViolation("Statement must be an object or a list of objects", field="Statement")

    statements = tuple(_parse_statement(raw, index) for index, raw in enumerate(raw_statements))
    document = PolicyDocument(version=version, id=policy_id, statements=statements)

    _logger.debug(
        {
            "event": "policy_parsed",
            "version": document.version,
            "policy_id": document.id,
            "statements": len(document.statements),
        }
    )
    return document


def parse_operator_key(raw: str, *, statement_index: int | None = None, sid: str | None = None) -> OperatorKey:
    """Decompose and validate a condition operator key.

    Args:
        raw: Operator key as written, e.g. "ForAnyValue:StringLikeIfExists".
        statement_index: For error locations.
        sid: For error locations.

    Returns:
        OperatorKey.

    Raises:
        SchemaViolation: If the base operator is unknown.
        UnsupportedOperator: For Null with IfExists or a set operator.
    """
    location: dict[str, Any] = {"statement_index": statement_index, "sid": sid, "field": "Condition", "operator": raw}
    quantifier, name, if_exists = OperatorKey.decompose(raw)
    try:
        base = ConditionOperator(name)
    except ValueError:
        raise SchemaViolation(f"Unknown condition operator {name!r}", **location) from None

    if base is ConditionOperator.NULL and (if_exists or quantifier is not None):
        raise UnsupportedOperator(
            "Null cannot be combined with IfExists or set operators",
            **location,
        )
    return OperatorKey(raw=raw, base=base, if_exists=if_exists, quantifier=quantifier)


# =============================================================================
# Statements
# =============================================================================


def _parse_statement(raw: Any, index: int) -> Statement:
    """Parse one statement object."""
    if not isinstance(raw, dict):
        raise SchemaViolation("Statement must be a JSON object", statement_index=index)

    sid = raw.get("Sid")
    if sid is not None and not isinstance(sid, str):
        raise SchemaViolation("Sid must be a string", statement_index=index, field="Sid")
    location: dict[str, Any] = {"statement_index": index, "sid": sid}

    unknown = sorted(set(raw) - STATEMENT_ELEMENTS)
    if unknown:
        raise SchemaViolation(f"Unknown statement element(s): {', '.join(unknown)}", **location)

    if "Effect" not in raw:
        raise MissingRequiredField("Effect is required", field="Effect", **location)
    effect = raw["Effect"]
    if effect not in EFFECTS:
        raise SchemaViolation(
            f"Effect must be 'Allow' or 'Deny', got {effect!r}",
            field="Effect",
            **location,
        )

    action, not_action = _parse_pattern_group(raw, "Action", "NotAction", _check_action_pattern, location)
    resource, not_resource = _parse_pattern_group(raw, "Resource", "NotResource", _check_resource_pattern, location)
    principal, not_principal = _parse_principal_group(raw, location)
    condition = _parse_condition(raw["Condition"], location) if "Condition" in raw else None

    return Statement(
        index=index,
        sid=sid,
        effect=effect,
        action=action,
        not_action=not_action,
        resource=resource,
        not_resource=not_resource,
        principal=principal,
        not_principal=not_principal,
        condition=condition,
    )


def _string_list(value: Any, field: str, location: dict[str, Any]) -> tuple[str, ...]:
    """Normalize a string-or-list-of-strings element to a non-empty tuple."""
    if isinstance(value, str):
        return (value,)
    if isinstance(value, list):
        if not value:
            raise SchemaViolation(f"{field} must not be empty", field=field, **location)
        if not all(isinstance(item, str) for item in value):
            raise SchemaViolation(f"{field} must contain only strings", field=field, **location)
        return tuple(value)
    raise SchemaViolation(f"{field} must be a string or a list of strings", field=field, **location)


def _check_action_pattern(pattern: str) -> bool:
    if pattern == WILDCARD:
        return True
    service, sep, name = pattern.partition(":")
    return bool(sep and service and name)


def _check_resource_pattern(pattern: str) -> bool:
    return pattern == WILDCARD or looks_like_arn(pattern)


def _parse_pattern_group(
    raw: dict[str, Any],
    positive: str,
    negative: str,
    check: Callable[[str], bool],
    location: dict[str, Any],
) -> tuple[tuple[str, ...] | None, tuple[str, ...] | None]:
    """Parse a required Action/NotAction or Resource/NotResource pair."""
    has_positive = positive in raw
    has_negative = negative in raw
    if has_positive and has_negative:
        raise InvalidFieldCombination(
            f"{positive} and {negative} cannot both be present",
            field=f"{positive}/{negative}",
            **location,
        )
    if not has_positive and not has_negative:
        raise MissingRequiredField(
            f"One of {positive} or {negative} is required",
            field=f"{positive}/{negative}",
            **location,
        )

    field = positive if has_positive else negative
    patterns = _string_list(raw[field], field, location)
    for pattern in patterns:
        if not check(pattern):
            raise SchemaViolation(f"Invalid {field} pattern {pattern!r}", field=field, **location)
    return (patterns, None) if has_positive else (None, patterns)


# =============================================================================
# Principals
# =============================================================================


def _parse_principal_group(
    raw: dict[str, Any],
    location: dict[str, Any],
) -> tuple[PrincipalBlock | None, PrincipalBlock | None]:
    """Parse the optional Principal/NotPrincipal pair."""
    if "Principal" in raw and "NotPrincipal" in raw:
        raise InvalidFieldCombination(
            "Principal and NotPrincipal cannot both be present",
            field="Principal/NotPrincipal",
            **location,
        )
    if "Principal" in raw:
        return _parse_principal_block(raw["Principal"], "Principal", location), None
    if "NotPrincipal" in raw:
        return None, _parse_principal_block(raw["NotPrincipal"], "NotPrincipal", location)
    return None, None


def _parse_principal_block(value: Any, field: str, location: dict[str, Any]) -> PrincipalBlock:
    if value == WILDCARD:
        return PrincipalBlock(wildcard=True)
    if not isinstance(value, dict) or not value:
        raise SchemaViolation(f"{field} must be '*' or a non-empty object", field=field, **location)

    entries: dict[str, tuple[str, ...]] = {}
    for principal_type, principals in value.items():
        attribute = PRINCIPAL_TYPES.get(principal_type)
        if attribute is None:
            raise SchemaViolation(
                f"Unknown principal type {principal_type!r} (expected one of {', '.join(PRINCIPAL_TYPES)})",
                field=field,
                **location,
            )
        names = _string_list(principals, f"{field}.{principal_type}", location)
        if principal_type == "AWS":
            for name in names:
                if not (name == WILDCARD or is_account_id(name) or looks_like_arn(name)):
                    raise SchemaViolation(
                        f"AWS principal must be '*', an account ID or an ARN, got {name!r}",
                        field=f"{field}.AWS",
                        **location,
                    )
        entries[attribute] = names
    return PrincipalBlock(**entries)


# =============================================================================
# Conditions
# =============================================================================


def _condition_values(value: Any, location: dict[str, Any]) -> tuple[str, ...]:
    """Normalize condition values; JSON booleans and numbers become their text."""

    def as_text(item: Any) -> str:
        if isinstance(item, str):
            return item
        if isinstance(item, bool):
            return "true" if item else "false"
        if isinstance(item, (int, float)):
            return str(item)
        raise SchemaViolation("Condition values must be strings, numbers or booleans", **location)

    if isinstance(value, list):
        if not value:
            raise SchemaViolation("Condition values must not be empty", **location)
        return tuple(as_text(item) for item in value)
    return (as_text(value),)


def _check_expected_values(operator: OperatorKey, key: str, values: tuple[str, ...], location: dict[str, Any]) -> None:
    """Validate expected values against the operator's value type."""
    family = operator.base.family
    if family is OperatorFamily.NULL and len(values) != 1:
        raise SchemaViolation(f"Null takes exactly one value for {key!r}", **location)

    for value in values:
        if family is OperatorFamily.ARN and value == WILDCARD:
            continue
        if parse_typed_value(family, value, expected=True) is None:
            raise SchemaViolation(f"Invalid {operator.base.value} value {value!r} for {key!r}", **location)


def _parse_condition(value: Any, statement_location: dict[str, Any]) -> ConditionBlock:
    """Parse a Condition element into a flat ConditionBlock."""
    if not isinstance(value, dict):
        raise SchemaViolation("Condition must be an object", field="Condition", **statement_location)

    entries: list[ConditionEntry] = []
    for raw_operator, body in value.items():
        operator = parse_operator_key(raw_operator, **statement_location)
        location = {**statement_location, "field": "Condition", "operator": raw_operator}
        if not isinstance(body, dict) or not body:
            raise SchemaViolation("Condition operator must map to a non-empty object of context keys", **location)

        for key, raw_values in body.items():
            values = _condition_values(raw_values, location)
            _check_expected_values(operator, key, values, location)

            hint = operator_type_hint(operator.base.family, key, quantified=operator.quantifier is not None)
            if hint:
                _logger.warning(
                    {
                        "event": "condition_type_hint",
                        "statement_index": statement_location["statement_index"],
                        "sid": statement_location["sid"],
                        "operator": raw_operator,
                        "key": key,
                        "hint": hint,
                    }
                )
            entries.append(ConditionEntry(operator=operator, key=key, values=values))

    return ConditionBlock(entries=tuple(entries))
