"""Policy models for IAM policy evaluation.

This module defines the typed, immutable form of an IAM policy document.
Documents are built from a generic JSON tree by pdp/parser.py; the models
here hold the normalized result (string-or-list fields become tuples,
Principal objects become PrincipalBlock).

Policy structure:
    PolicyDocument
    ├── version: "2012-10-17" | "2008-10-17"
    ├── id: Optional document identifier
    └── statements: tuple[Statement]
        └── Statement
            ├── sid: Optional identifier (diagnostics only)
            ├── effect: "Allow" | "Deny"
            ├── action | not_action: tuple of action patterns
            ├── resource | not_resource: tuple of resource patterns
            ├── principal | not_principal: PrincipalBlock (optional)
            └── condition: ConditionBlock (optional)
                └── entries: tuple[ConditionEntry]
                    ├── operator: OperatorKey
                    ├── key: Context key name
                    └── values: Expected values

Design principles:
1. Exactly one of Action/NotAction and of Resource/NotResource
2. Deny-overrides combining: DENY > ALLOW > implicit deny
3. Unknown operators are rejected, never ignored
"""

from __future__ import annotations

from enum import Enum
from typing import Literal, Self

from pydantic import BaseModel, ConfigDict, model_validator

from iam_policy_eval.constants import (
    FOR_ALL_VALUES_PREFIX,
    FOR_ANY_VALUE_PREFIXES,
    IF_EXISTS_SUFFIX,
)

__all__ = [
    "Comparison",
    "ConditionBlock",
    "ConditionEntry",
    "ConditionOperator",
    "Effect",
    "OperatorFamily",
    "OperatorKey",
    "PolicyDocument",
    "PrincipalBlock",
    "Quantifier",
    "Statement",
]

Effect = Literal["Allow", "Deny"]


class OperatorFamily(str, Enum):
    """How an operator interprets context and expected values."""

    STRING = "string"
    STRING_IGNORE_CASE = "string_ignore_case"
    STRING_LIKE = "string_like"
    NUMERIC = "numeric"
    DATE = "date"
    BOOL = "bool"
    BINARY = "binary"
    IP_ADDRESS = "ip_address"
    ARN = "arn"
    NULL = "null"


class Comparison(str, Enum):
    """Ordering test for Numeric and Date operators."""

    EQ = "eq"
    LT = "lt"
    LE = "le"
    GT = "gt"
    GE = "ge"


# name -> (family, comparison, negated)
_OPERATOR_TABLE: dict[str, tuple[OperatorFamily, Comparison, bool]] = {
    "StringEquals": (OperatorFamily.STRING, Comparison.EQ, False),
    "StringNotEquals": (OperatorFamily.STRING, Comparison.EQ, True),
    "StringEqualsIgnoreCase": (OperatorFamily.STRING_IGNORE_CASE, Comparison.EQ, False),
    "StringNotEqualsIgnoreCase": (OperatorFamily.STRING_IGNORE_CASE, Comparison.EQ, True),
    "StringLike": (OperatorFamily.STRING_LIKE, Comparison.EQ, False),
    "StringNotLike": (OperatorFamily.STRING_LIKE, Comparison.EQ, True),
    "NumericEquals": (OperatorFamily.NUMERIC, Comparison.EQ, False),
    "NumericNotEquals": (OperatorFamily.NUMERIC, Comparison.EQ, True),
    "NumericLessThan": (OperatorFamily.NUMERIC, Comparison.LT, False),
    "NumericLessThanEquals": (OperatorFamily.NUMERIC, Comparison.LE, False),
    "NumericGreaterThan": (OperatorFamily.NUMERIC, Comparison.GT, False),
    "NumericGreaterThanEquals": (OperatorFamily.NUMERIC, Comparison.GE, False),
    "DateEquals": (OperatorFamily.DATE, Comparison.EQ, False),
    "DateNotEquals": (OperatorFamily.DATE, Comparison.EQ, True),
    "DateLessThan": (OperatorFamily.DATE, Comparison.LT, False),
    "DateLessThanEquals": (OperatorFamily.DATE, Comparison.LE, False),
    "DateGreaterThan": (OperatorFamily.DATE, Comparison.GT, False),
    "DateGreaterThanEquals": (OperatorFamily.DATE, Comparison.GE, False),
    "Bool": (OperatorFamily.BOOL, Comparison.EQ, False),
    "BinaryEquals": (OperatorFamily.BINARY, Comparison.EQ, False),
    "IpAddress": (OperatorFamily.IP_ADDRESS, Comparison.EQ, False),
    "NotIpAddress": (OperatorFamily.IP_ADDRESS, Comparison.EQ, True),
    "ArnEquals": (OperatorFamily.ARN, Comparison.EQ, False),
    "ArnLike": (OperatorFamily.ARN, Comparison.EQ, False),
    "ArnNotEquals": (OperatorFamily.ARN, Comparison.EQ, True),
    "ArnNotLike": (OperatorFamily.ARN, Comparison.EQ, True),
    "Null": (OperatorFamily.NULL, Comparison.EQ, False),
}


class ConditionOperator(str, Enum):
    """Base condition operators (without IfExists or set prefixes)."""

    STRING_EQUALS = "StringEquals"
    STRING_NOT_EQUALS = "StringNotEquals"
    STRING_EQUALS_IGNORE_CASE = "StringEqualsIgnoreCase"
    STRING_NOT_EQUALS_IGNORE_CASE = "StringNotEqualsIgnoreCase"
    STRING_LIKE = "StringLike"
    STRING_NOT_LIKE = "StringNotLike"
    NUMERIC_EQUALS = "NumericEquals"
    NUMERIC_NOT_EQUALS = "NumericNotEquals"
    NUMERIC_LESS_THAN = "NumericLessThan"
    NUMERIC_LESS_THAN_EQUALS = "NumericLessThanEquals"
    NUMERIC_GREATER_THAN = "NumericGreaterThan"
    NUMERIC_GREATER_THAN_EQUALS = "NumericGreaterThanEquals"
    DATE_EQUALS = "DateEquals"
    DATE_NOT_EQUALS = "DateNotEquals"
    DATE_LESS_THAN = "DateLessThan"
    DATE_LESS_THAN_EQUALS = "DateLessThanEquals"
    DATE_GREATER_THAN = "DateGreaterThan"
    DATE_GREATER_THAN_EQUALS = "DateGreaterThanEquals"
    BOOL = "Bool"
    BINARY_EQUALS = "BinaryEquals"
    IP_ADDRESS = "IpAddress"
    NOT_IP_ADDRESS = "NotIpAddress"
    ARN_EQUALS = "ArnEquals"
    ARN_LIKE = "ArnLike"
    ARN_NOT_EQUALS = "ArnNotEquals"
    ARN_NOT_LIKE = "ArnNotLike"
    NULL = "Null"

    @property
    def family(self) -> OperatorFamily:
        return _OPERATOR_TABLE[self.value][0]

    @property
    def comparison(self) -> Comparison:
        return _OPERATOR_TABLE[self.value][1]

    @property
    def negated(self) -> bool:
        """True for operators that succeed when no expected value matches."""
        return _OPERATOR_TABLE[self.value][2]


class Quantifier(str, Enum):
    """Set operator prefix for multi-valued context keys."""

    FOR_ALL_VALUES = "ForAllValues"
    FOR_ANY_VALUE = "ForAnyValue"


class OperatorKey(BaseModel):
    """A decomposed condition operator key.

    "ForAllValues:StringLikeIfExists" becomes
    base=STRING_LIKE, if_exists=True, quantifier=FOR_ALL_VALUES.

    Attributes:
        raw: The key as written in the policy.
        base: Base operator.
        if_exists: Whether the IfExists suffix is present.
        quantifier: Set operator prefix, if any.
    """

    raw: str
    base: ConditionOperator
    if_exists: bool = False
    quantifier: Quantifier | None = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def decompose(cls, raw: str) -> tuple[Quantifier | None, str, bool]:
        """Split a raw key into (quantifier, base name, if_exists) without validating the name."""
        name = raw
        quantifier: Quantifier | None = None
        if name.startswith(FOR_ALL_VALUES_PREFIX):
            quantifier = Quantifier.FOR_ALL_VALUES
            name = name[len(FOR_ALL_VALUES_PREFIX) :]
        else:
            for prefix in FOR_ANY_VALUE_PREFIXES:
                if name.startswith(prefix):
                    quantifier = Quantifier.FOR_ANY_VALUE
                    name = name[len(prefix) :]
                    break

        if_exists = name.endswith(IF_EXISTS_SUFFIX)
        if if_exists:
            name = name[: -len(IF_EXISTS_SUFFIX)]
        return quantifier, name, if_exists

    def __str__(self) -> str:
        return self.raw


class ConditionEntry(BaseModel):
    """One operator/key constraint of a Condition block.

    Attributes:
        operator: Decomposed operator key.
        key: Context key name as written (matched case-insensitively).
        values: Expected values, in document order.
    """

    operator: OperatorKey
    key: str
    values: tuple[str, ...]

    model_config = ConfigDict(frozen=True)


class ConditionBlock(BaseModel):
    """A statement's Condition element (AND across all entries).

    The JSON mapping operator -> key -> values is flattened into entries.
    """

    entries: tuple[ConditionEntry, ...]

    model_config = ConfigDict(frozen=True)


class PrincipalBlock(BaseModel):
    """A Principal or NotPrincipal element.

    Either the bare wildcard ("Principal": "*") or any combination of
    principal types, each an independent match-any list.

    Attributes:
        wildcard: True for "Principal": "*".
        aws: AWS account IDs, ARNs or "*".
        canonical_user: S3 canonical user IDs.
        federated: Identity provider names or ARNs.
        service: Service principals, e.g. "lambda.amazonaws.com".
    """

    wildcard: bool = False
    aws: tuple[str, ...] = ()
    canonical_user: tuple[str, ...] = ()
    federated: tuple[str, ...] = ()
    service: tuple[str, ...] = ()

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def wildcard_or_typed(self) -> Self:
        """A block is either the wildcard or has at least one typed principal."""
        has_typed = any((self.aws, self.canonical_user, self.federated, self.service))
        if self.wildcard and has_typed:
            raise ValueError("Wildcard principal cannot be combined with typed principals")
        if not self.wildcard and not has_typed:
            raise ValueError("Principal block must name at least one principal")
        return self


class Statement(BaseModel):
    """A single policy statement.

    Attributes:
        index: Position in the document (diagnostics only).
        sid: Optional statement identifier.
        effect: "Allow" or "Deny".
        action / not_action: Action patterns; exactly one is set.
        resource / not_resource: Resource patterns; exactly one is set.
        principal / not_principal: At most one is set.
        condition: Optional Condition block.
    """

    index: int = 0
    sid: str | None = None
    effect: Effect
    action: tuple[str, ...] | None = None
    not_action: tuple[str, ...] | None = None
    resource: tuple[str, ...] | None = None
    not_resource: tuple[str, ...] | None = None
    principal: PrincipalBlock | None = None
    not_principal: PrincipalBlock | None = None
    condition: ConditionBlock | None = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def exclusive_field_groups(self) -> Self:
        """Validate the Action/Resource/Principal field groups."""
        for name, positive, negative in (
            ("action", self.action, self.not_action),
            ("resource", self.resource, self.not_resource),
        ):
            if (positive is None) == (negative is None):
                raise ValueError(f"Exactly one of {name} or not_{name} must be set")
            patterns = positive if positive is not None else negative
            if not patterns:
                raise ValueError(f"{name} patterns must not be empty")
        if self.principal is not None and self.not_principal is not None:
            raise ValueError("principal and not_principal cannot both be set")
        return self

    @property
    def label(self) -> str:
        """Sid, or the positional label for statements without one."""
        return self.sid if self.sid else f"Statement[{self.index}]"


class PolicyDocument(BaseModel):
    """A complete IAM policy document.

    Attributes:
        version: Policy language version.
        id: Optional document identifier.
        statements: Statements in document order.
    """

    version: str
    id: str | None = None
    statements: tuple[Statement, ...] = ()

    model_config = ConfigDict(frozen=True)
