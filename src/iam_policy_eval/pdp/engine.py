"""Policy engine - evaluate a RequestContext against a PolicyDocument.

This module provides the PolicyEngine class that evaluates requests
against policy statements to produce Allow/ExplicitDeny/ImplicitDeny.

Evaluation flow:
1. Decide, for every statement, whether it applies to the request
2. Apply combining algorithm: DENY > ALLOW
3. No applicable statement → ImplicitDeny

A statement applies when ALL of these hold:
- Action/NotAction matches the request action
- Resource/NotResource matches the request resource
- Principal/NotPrincipal matches the request principal (see principal_applies)
- The Condition block, if any, evaluates true

Design principles:
1. Every statement is evaluated; the result never depends on statement order
2. Deny overrides Allow regardless of position or count
3. Errors abort the evaluation; no error becomes a decision
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from iam_policy_eval.constants import LOGGER_NAME
from iam_policy_eval.context.request import RequestContext
from iam_policy_eval.exceptions import EvaluationError
from iam_policy_eval.pdp.conditions import evaluate_condition_block
from iam_policy_eval.pdp.decision import Decision, EvaluationOutcome
from iam_policy_eval.pdp.matcher import action_matches, principal_matches, resource_matches
from iam_policy_eval.pdp.policy import Effect, PolicyDocument, Statement

__all__ = [
    "MatchedStatement",
    "PolicyEngine",
    "evaluate",
    "principal_applies",
]

_logger = logging.getLogger(f"{LOGGER_NAME}.pdp.engine")


@dataclass(frozen=True)
class MatchedStatement:
    """A policy statement that applies to the request.

    Attributes:
        index: Position of the statement in the document.
        sid: Statement Sid, if any.
        effect: The statement's effect ("Allow", "Deny").
    """

    index: int
    sid: str | None
    effect: Effect


def principal_applies(statement: Statement, request: RequestContext) -> bool:
    """Decide whether the statement's principal constraint is satisfied.

    When the request carries no principal the policy is evaluated as an
    identity policy and Principal/NotPrincipal are ignored. This is a
    provisional simplification; tightening it (e.g. rejecting principal
    constraints without a principal) only requires changing this function.

    Args:
        statement: Statement to check.
        request: Request context.

    Returns:
        True if the statement's principal constraint does not exclude the request.
    """
    if request.principal is None:
        return True
    return principal_matches(statement, request.principal)


class PolicyEngine:
    """Policy evaluation engine.

    Evaluates RequestContext against the statements of one policy document.

    Uses DENY > ALLOW combining algorithm:
    - If ANY applicable statement says Deny → ExplicitDeny
    - Else if ANY applicable statement says Allow → Allow
    - Else → ImplicitDeny

    The engine holds no state besides the document and may be shared across
    threads; evaluate() is a pure function of the document and the request.

    Attributes:
        document: The policy document to evaluate against.
    """

    def __init__(self, document: PolicyDocument) -> None:
        """Initialize the policy engine.

        Args:
            document: Parsed policy document.
        """
        self.document = document

    def evaluate(self, request: RequestContext) -> EvaluationOutcome:
        """Evaluate a request against the policy.

        Args:
            request: The simulated request.

        Returns:
            EvaluationOutcome with the decision and deciding Sids.

        Raises:
            EvaluationError: If any statement cannot be evaluated (for
                example an unsupported condition operator). No decision is
                produced in that case.
        """
        try:
            matched = self.get_matching_statements(request)
        except EvaluationError:
            # Re-raise our own exceptions
            raise
        except Exception as e:
            # A crash means no statement's result can be trusted
            raise EvaluationError(f"Policy evaluation failed unexpectedly: {type(e).__name__}: {e}") from e

        denies = [m for m in matched if m.effect == "Deny"]
        allows = [m for m in matched if m.effect == "Allow"]

        # DENY has priority - regardless of statement order
        if denies:
            outcome = EvaluationOutcome(Decision.EXPLICIT_DENY, _sids(denies))
        elif allows:
            outcome = EvaluationOutcome(Decision.ALLOW, _sids(allows))
        else:
            outcome = EvaluationOutcome(Decision.IMPLICIT_DENY)

        _logger.info(
            {
                "event": "policy_decision",
                "decision": outcome.decision.value,
                "deciding_sids": sorted(outcome.sids),
                "matched_statements": [m.index for m in matched],
                "action": request.action,
                "resource": request.resource,
                "principal": str(request.principal) if request.principal else None,
            }
        )
        return outcome

    def get_matching_statements(self, request: RequestContext) -> list[MatchedStatement]:
        """Get all statements that apply to the request.

        Every statement is evaluated, so an error in any statement surfaces
        no matter where the statement sits in the document.

        Args:
            request: Request context to match against.

        Returns:
            List of MatchedStatement in document order.

        Raises:
            EvaluationError: If a statement cannot be evaluated. The error
                carries the statement's index and Sid.
        """
        matched: list[MatchedStatement] = []
        for statement in self.document.statements:
            try:
                applies = self._statement_applies(statement, request)
            except EvaluationError as e:
                e.at_statement(statement.index, statement.sid)
                raise
            if applies:
                matched.append(MatchedStatement(index=statement.index, sid=statement.sid, effect=statement.effect))
        return matched

    def _statement_applies(self, statement: Statement, request: RequestContext) -> bool:
        """Check if a statement applies to the request.

        All checks use AND logic - all must match.

        Args:
            statement: Policy statement to check.
            request: Request context to match against.

        Returns:
            True if the statement applies, False if it is not applicable.
        """
        if not action_matches(statement, request.action):
            return False

        if not resource_matches(statement, request.resource):
            return False

        if not principal_applies(statement, request):
            return False

        if statement.condition is not None and not evaluate_condition_block(statement.condition, request):
            return False

        _logger.debug(
            {
                "event": "statement_applicable",
                "statement": statement.label,
                "effect": statement.effect,
            }
        )
        return True


def _sids(statements: list[MatchedStatement]) -> frozenset[str]:
    return frozenset(m.sid for m in statements if m.sid)


def evaluate(document: PolicyDocument, request: RequestContext) -> EvaluationOutcome:
    """Evaluate a request against a policy document.

    Convenience wrapper around PolicyEngine(document).evaluate(request).
    """
    return PolicyEngine(document).evaluate(request)
