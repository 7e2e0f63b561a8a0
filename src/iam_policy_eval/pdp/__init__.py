"""Policy Decision Point (PDP) - IAM policy evaluation engine.

This module evaluates IAM policy documents against a RequestContext:

- context/: Builds RequestContext from CLI arguments and context files
- pdp/ (this module): Parses documents and evaluates them
- cli/: Presents decisions

The PDP is stateless and side-effect free apart from logging.
All file I/O happens in utils.policy.

Structure:
    policy.py         - Document model (PolicyDocument, Statement, Condition)
    parser.py         - JSON tree → PolicyDocument with located errors
    matcher.py        - Action/Resource/Principal wildcard matching
    conditions.py     - Condition operators and evaluation
    global_keys.py    - Catalogue of aws: global condition keys
    decision.py       - Decision enum and EvaluationOutcome
    engine.py         - PolicyEngine (Deny > Allow > ImplicitDeny)

Policy file I/O is in utils/policy/policy_helpers.py.
"""

from iam_policy_eval.pdp.decision import Decision, EvaluationOutcome
from iam_policy_eval.pdp.engine import MatchedStatement, PolicyEngine, evaluate, principal_applies
from iam_policy_eval.pdp.parser import parse_operator_key, parse_policy
from iam_policy_eval.pdp.policy import (
    ConditionBlock,
    ConditionEntry,
    ConditionOperator,
    OperatorKey,
    PolicyDocument,
    PrincipalBlock,
    Quantifier,
    Statement,
)

# NOTE: Policy I/O functions (load_policy, load_context_file) are in utils.policy
# to avoid circular imports. Import them directly:
#   from iam_policy_eval.utils.policy import load_policy

__all__ = [
    # Decision
    "Decision",
    "EvaluationOutcome",
    # Engine
    "PolicyEngine",
    "MatchedStatement",
    "evaluate",
    "principal_applies",
    # Parser
    "parse_policy",
    "parse_operator_key",
    # Document model
    "PolicyDocument",
    "Statement",
    "PrincipalBlock",
    "ConditionBlock",
    "ConditionEntry",
    "ConditionOperator",
    "OperatorKey",
    "Quantifier",
]
