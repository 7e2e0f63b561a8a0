"""Catalogue of AWS global condition keys.

Value type and cardinality of the ``aws:`` keys available in every request
context. Used by the parser to warn about conditions that can never behave
as written (a Date operator on a string key, a single-valued operator on a
multi-valued key). The catalogue never changes evaluation results.

See https://docs.aws.amazon.com/IAM/latest/UserGuide/reference_policies_condition-keys.html
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from iam_policy_eval.pdp.policy import OperatorFamily

__all__ = [
    "Cardinality",
    "GlobalKey",
    "KeyType",
    "lookup_global_key",
    "operator_type_hint",
]


class KeyType(str, Enum):
    STRING = "String"
    NUMERIC = "Numeric"
    DATE = "Date"
    EPOCH = "Epoch"  # Accepts both Date and Numeric operators
    BOOL = "Bool"
    BINARY = "Binary"
    IP_ADDRESS = "IpAddress"
    ARN = "ARN"


class Cardinality(str, Enum):
    OPTIONAL = "optional"
    REQUIRED = "required"
    MULTIPLE = "multiple"


@dataclass(frozen=True)
class GlobalKey:
    name: str
    type: KeyType
    cardinality: Cardinality


_KEYS: tuple[GlobalKey, ...] = (
    GlobalKey("aws:CalledVia", KeyType.STRING, Cardinality.MULTIPLE),
    GlobalKey("aws:CalledViaFirst", KeyType.STRING, Cardinality.OPTIONAL),
    GlobalKey("aws:CalledViaLast", KeyType.STRING, Cardinality.OPTIONAL),
    GlobalKey("aws:CurrentTime", KeyType.DATE, Cardinality.REQUIRED),
    GlobalKey("aws:EpochTime", KeyType.EPOCH, Cardinality.REQUIRED),
    GlobalKey("aws:FederatedProvider", KeyType.STRING, Cardinality.OPTIONAL),
    GlobalKey("aws:MultiFactorAuthAge", KeyType.NUMERIC, Cardinality.OPTIONAL),
    GlobalKey("aws:MultiFactorAuthPresent", KeyType.BOOL, Cardinality.OPTIONAL),
    GlobalKey("aws:PrincipalAccount", KeyType.STRING, Cardinality.REQUIRED),
    GlobalKey("aws:PrincipalArn", KeyType.ARN, Cardinality.OPTIONAL),
    GlobalKey("aws:PrincipalIsAWSService", KeyType.BOOL, Cardinality.OPTIONAL),
    GlobalKey("aws:PrincipalOrgID", KeyType.STRING, Cardinality.OPTIONAL),
    GlobalKey("aws:PrincipalOrgPaths", KeyType.STRING, Cardinality.MULTIPLE),
    GlobalKey("aws:PrincipalServiceName", KeyType.STRING, Cardinality.OPTIONAL),
    GlobalKey("aws:PrincipalServiceNamesList", KeyType.STRING, Cardinality.MULTIPLE),
    GlobalKey("aws:PrincipalTag", KeyType.STRING, Cardinality.OPTIONAL),
    GlobalKey("aws:PrincipalType", KeyType.STRING, Cardinality.REQUIRED),
    GlobalKey("aws:referer", KeyType.STRING, Cardinality.OPTIONAL),
    GlobalKey("aws:RequestedRegion", KeyType.STRING, Cardinality.REQUIRED),
    GlobalKey("aws:RequestTag", KeyType.STRING, Cardinality.OPTIONAL),
    GlobalKey("aws:ResourceAccount", KeyType.STRING, Cardinality.REQUIRED),
    GlobalKey("aws:ResourceOrgID", KeyType.STRING, Cardinality.OPTIONAL),
    GlobalKey("aws:ResourceOrgPaths", KeyType.STRING, Cardinality.MULTIPLE),
    GlobalKey("aws:ResourceTag", KeyType.STRING, Cardinality.OPTIONAL),
    GlobalKey("aws:SecureTransport", KeyType.BOOL, Cardinality.REQUIRED),
    GlobalKey("aws:SourceAccount", KeyType.STRING, Cardinality.OPTIONAL),
    GlobalKey("aws:SourceArn", KeyType.ARN, Cardinality.OPTIONAL),
    GlobalKey("aws:SourceIdentity", KeyType.STRING, Cardinality.OPTIONAL),
    GlobalKey("aws:SourceIp", KeyType.IP_ADDRESS, Cardinality.OPTIONAL),
    GlobalKey("aws:SourceVpc", KeyType.STRING, Cardinality.OPTIONAL),
    GlobalKey("aws:SourceVpce", KeyType.STRING, Cardinality.OPTIONAL),
    GlobalKey("aws:TagKeys", KeyType.STRING, Cardinality.MULTIPLE),
    GlobalKey("aws:TokenIssueTime", KeyType.DATE, Cardinality.OPTIONAL),
    GlobalKey("aws:UserAgent", KeyType.STRING, Cardinality.REQUIRED),
    GlobalKey("aws:userid", KeyType.STRING, Cardinality.REQUIRED),
    GlobalKey("aws:username", KeyType.STRING, Cardinality.OPTIONAL),
    GlobalKey("aws:ViaAWSService", KeyType.BOOL, Cardinality.REQUIRED),
    GlobalKey("aws:VpcSourceIp", KeyType.IP_ADDRESS, Cardinality.OPTIONAL),
)

_BY_NAME: dict[str, GlobalKey] = {key.name.lower(): key for key in _KEYS}

# Keys used as aws:<Name>/<tag-key>
_TAG_KEYS: frozenset[str] = frozenset({"aws:principaltag", "aws:requesttag", "aws:resourcetag"})

# Key types each operator family can meaningfully compare
_COMPATIBLE_TYPES: dict[OperatorFamily, frozenset[KeyType]] = {
    OperatorFamily.STRING: frozenset({KeyType.STRING, KeyType.ARN}),
    OperatorFamily.STRING_IGNORE_CASE: frozenset({KeyType.STRING, KeyType.ARN}),
    OperatorFamily.STRING_LIKE: frozenset({KeyType.STRING, KeyType.ARN}),
    OperatorFamily.NUMERIC: frozenset({KeyType.NUMERIC, KeyType.EPOCH}),
    OperatorFamily.DATE: frozenset({KeyType.DATE, KeyType.EPOCH}),
    OperatorFamily.BOOL: frozenset({KeyType.BOOL}),
    OperatorFamily.BINARY: frozenset({KeyType.BINARY}),
    OperatorFamily.IP_ADDRESS: frozenset({KeyType.IP_ADDRESS}),
    OperatorFamily.ARN: frozenset({KeyType.ARN}),
}


def lookup_global_key(name: str) -> GlobalKey | None:
    """Find a global key by name (case-insensitive, tag keys by prefix)."""
    lowered = name.lower()
    key = _BY_NAME.get(lowered)
    if key is not None:
        return key
    prefix, sep, _ = lowered.partition("/")
    if sep and prefix in _TAG_KEYS:
        return _BY_NAME[prefix]
    return None


def operator_type_hint(
    family: OperatorFamily,
    key_name: str,
    *,
    quantified: bool,
) -> str | None:
    """Describe a likely mistake in applying an operator to a global key.

    Args:
        family: Operator family of the condition.
        key_name: Context key name from the condition.
        quantified: Whether the operator has a ForAllValues/ForAnyValue prefix.

    Returns:
        A warning message, or None when nothing looks wrong or the key is unknown.
    """
    key = lookup_global_key(key_name)
    if key is None or family is OperatorFamily.NULL:
        return None
    if key.type not in _COMPATIBLE_TYPES[family]:
        return f"{key.name} holds {key.type.value} values, compared with a {family.value} operator"
    if key.cardinality is Cardinality.MULTIPLE and not quantified:
        return f"{key.name} is multi-valued; use ForAllValues: or ForAnyValue:"
    if key.cardinality is not Cardinality.MULTIPLE and quantified:
        return f"{key.name} is single-valued; set operators are unnecessary"
    return None
