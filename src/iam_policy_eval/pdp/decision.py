"""Decision types returned by the policy engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

__all__ = ["Decision", "EvaluationOutcome"]


class Decision(str, Enum):
    """Final evaluation result.

    ALLOW: At least one applicable Allow statement and no applicable Deny.
    EXPLICIT_DENY: At least one applicable Deny statement.
    IMPLICIT_DENY: No applicable statement.
    """

    ALLOW = "Allow"
    EXPLICIT_DENY = "ExplicitDeny"
    IMPLICIT_DENY = "ImplicitDeny"


@dataclass(frozen=True)
class EvaluationOutcome:
    """Decision plus the Sids of the statements that decided it.

    The Sids are a set, so permuting the statements of a document never
    changes the outcome. Statements without a Sid are not listed.

    Attributes:
        decision: Final decision.
        sids: Sids of the applicable statements carrying the deciding effect.
    """

    decision: Decision
    sids: frozenset[str] = field(default_factory=frozenset)

    @property
    def allowed(self) -> bool:
        return self.decision is Decision.ALLOW

    @property
    def sid(self) -> str | None:
        """The deciding Sid when exactly one statement decided the outcome."""
        if len(self.sids) == 1:
            return next(iter(self.sids))
        return None

    def __str__(self) -> str:
        if not self.sids:
            return self.decision.value
        return f"{self.decision.value} ({', '.join(sorted(self.sids))})"
