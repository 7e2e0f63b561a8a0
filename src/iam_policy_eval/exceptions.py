"""Exceptions for iam-policy-eval.

Hierarchy:
    PolicyEvalError
    ├── ParseError                  - policy document rejected, never evaluated
    │   ├── SchemaViolation         - wrong type, unknown element or literal
    │   ├── InvalidFieldCombination - mutually exclusive elements co-occur
    │   ├── MissingRequiredField    - required element absent
    │   └── UnsupportedOperator     - valid operator form that is not implemented
    ├── EvaluationError             - evaluation aborted, no decision produced
    │   ├── UnsupportedConditionError
    │   └── MissingContextValue     - reserved for simulated context values
    └── ArgumentError               - caller supplied an inconsistent request

No error is ever converted into an Allow or Deny decision.
"""

from __future__ import annotations

__all__ = [
    "PolicyEvalError",
    "ParseError",
    "SchemaViolation",
    "InvalidFieldCombination",
    "MissingRequiredField",
    "UnsupportedOperator",
    "EvaluationError",
    "UnsupportedConditionError",
    "MissingContextValue",
    "ArgumentError",
]


class PolicyEvalError(Exception):
    """Base class for all iam-policy-eval errors."""


class ParseError(PolicyEvalError):
    """Policy document does not follow the IAM policy grammar.

    Attributes:
        reason: What is wrong, without location.
        statement_index: Zero-based index of the offending statement, if any.
        sid: Sid of the offending statement, if it has one.
        field: Policy element name (e.g. "Action", "Condition").
        operator: Condition operator key, for condition errors.
    """

    def __init__(
        self,
        reason: str,
        *,
        statement_index: int | None = None,
        sid: str | None = None,
        field: str | None = None,
        operator: str | None = None,
    ) -> None:
        self.reason = reason
        self.statement_index = statement_index
        self.sid = sid
        self.field = field
        self.operator = operator
        super().__init__(self._format())

    @property
    def location(self) -> str:
        """Human-readable path to the offending fragment, e.g. Statement[1](ReadOnly).Condition."""
        return _format_location(self.statement_index, self.sid, self.field, self.operator)

    def _format(self) -> str:
        location = self.location
        return f"{location}: {self.reason}" if location else self.reason


def _format_location(statement_index: int | None, sid: str | None, *parts: str | None) -> str:
    segments: list[str] = []
    if statement_index is not None:
        stmt = f"Statement[{statement_index}]"
        if sid:
            stmt += f"({sid})"
        segments.append(stmt)
    segments.extend(part for part in parts if part)
    return ".".join(segments)


class SchemaViolation(ParseError):
    """An element has the wrong type, an unknown name or an unrecognized literal."""


class InvalidFieldCombination(ParseError):
    """Mutually exclusive elements (e.g. Action and NotAction) are both present."""


class MissingRequiredField(ParseError):
    """A required element (e.g. Effect, or one of Action/NotAction) is absent."""


class UnsupportedOperator(ParseError):
    """Condition operator form is valid IAM grammar but not implemented."""


class EvaluationError(PolicyEvalError):
    """Evaluation could not produce a decision.

    The engine attaches the failing statement via at_statement() before the
    error leaves the document loop.

    Attributes:
        reason: What went wrong, without location.
        statement_index: Zero-based index of the failing statement, once known.
        sid: Sid of the failing statement, if it has one.
    """

    def __init__(
        self,
        reason: str,
        *,
        statement_index: int | None = None,
        sid: str | None = None,
    ) -> None:
        self.reason = reason
        self.statement_index = statement_index
        self.sid = sid
        super().__init__(self._format())

    @property
    def location(self) -> str:
        """Statement the error belongs to, e.g. Statement[1](Tagged)."""
        return _format_location(self.statement_index, self.sid)

    def at_statement(self, statement_index: int, sid: str | None) -> EvaluationError:
        """Record the failing statement and refresh the message."""
        self.statement_index = statement_index
        self.sid = sid
        self.args = (self._format(),)
        return self

    def _format(self) -> str:
        location = self.location
        return f"{location}: {self.reason}" if location else self.reason


class UnsupportedConditionError(EvaluationError):
    """Condition operator form cannot be evaluated faithfully.

    Raised instead of guessing: defaulting to False would hide a restriction,
    defaulting to True would grant access.

    Attributes:
        operator: The full operator key (e.g. "ForAllValues:StringNotEquals").
    """

    def __init__(self, operator: str, reason: str | None = None) -> None:
        self.operator = operator
        message = f"Unsupported condition operator: {operator}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class MissingContextValue(EvaluationError):
    """A context value that must be simulated was not supplied.

    Attributes:
        key: Context key name.
    """

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Missing value for context key: {key}")


class ArgumentError(PolicyEvalError):
    """Request arguments are inconsistent (caller-layer validation)."""
