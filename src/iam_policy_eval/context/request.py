"""Request context for policy evaluation.

A RequestContext is the simulated request a policy is evaluated against:
the action, the resource, optionally the calling principal, and the
request's condition context keys.

IAM context keys are multi-valued, so every key maps to a tuple of
strings. Key names are case-insensitive: "aws:SourceIp" and
"AWS:sourceip" name the same key.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

__all__ = [
    "ContextValues",
    "PrincipalDescriptor",
    "PrincipalKind",
    "RequestContext",
    "normalize_context_keys",
]

PrincipalKind = Literal["AWS", "CanonicalUser", "Federated", "Service"]

ContextValues = dict[str, tuple[str, ...]]


class PrincipalDescriptor(BaseModel):
    """The principal making the request.

    Attributes:
        kind: Principal type, matching the Principal element keys.
        value: ARN or account ID (AWS), canonical ID, provider, or service name.
    """

    kind: PrincipalKind
    value: str = Field(min_length=1)

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"{self.kind}:{self.value}"


def normalize_context_keys(keys: Mapping[str, str | Sequence[str]]) -> ContextValues:
    """Lower-case key names and turn every value into a tuple of strings.

    Keys that differ only in case are merged, values kept in order.

    Raises:
        ValueError: If a value is neither a string nor a sequence of strings.
    """
    normalized: ContextValues = {}
    for name, raw in keys.items():
        if isinstance(raw, str):
            values: tuple[str, ...] = (raw,)
        elif isinstance(raw, (list, tuple)) and all(isinstance(v, str) for v in raw):
            values = tuple(raw)
        else:
            raise ValueError(f"Context key {name!r} must map to a string or list of strings")
        lowered = name.lower()
        normalized[lowered] = normalized.get(lowered, ()) + values
    return normalized


class RequestContext(BaseModel):
    """A simulated request.

    Attributes:
        action: Requested action, e.g. "s3:GetObject".
        resource: Target resource ARN (or any string for non-ARN resources).
        principal: Calling principal; None evaluates the policy as an
            identity policy.
        context_keys: Condition context keys (lower-cased) to their values.
    """

    action: str = Field(min_length=1)
    resource: str = Field(min_length=1)
    principal: PrincipalDescriptor | None = None
    context_keys: ContextValues = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    @field_validator("context_keys", mode="before")
    @classmethod
    def _normalize_keys(cls, value: Any) -> Any:
        if isinstance(value, Mapping):
            return normalize_context_keys(value)
        return value

    def get_values(self, key: str) -> tuple[str, ...] | None:
        """Values of a context key, or None if the request does not carry it."""
        return self.context_keys.get(key.lower())
