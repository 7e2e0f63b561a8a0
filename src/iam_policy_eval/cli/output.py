"""Human-readable output for the CLI."""

from pathlib import Path

import click

from iam_policy_eval.pdp.decision import Decision, EvaluationOutcome
from iam_policy_eval.pdp.policy import PolicyDocument

__all__ = [
    "echo_error",
    "echo_outcome",
    "echo_policy_summary",
]

_DECISION_COLORS = {
    Decision.ALLOW: "green",
    Decision.EXPLICIT_DENY: "red",
    Decision.IMPLICIT_DENY: "yellow",
}


def echo_policy_summary(document: PolicyDocument, path: Path) -> None:
    """Print the result of a parse-only run."""
    count = len(document.statements)
    click.echo(f"✓ Policy valid: {path}")
    click.echo(f"  Version: {document.version}")
    if document.id:
        click.echo(f"  Id: {document.id}")
    click.echo(f"  {count} statement{'s' if count != 1 else ''} defined")


def echo_outcome(outcome: EvaluationOutcome) -> None:
    """Print a decision and the statements that produced it."""
    click.secho(outcome.decision.value, fg=_DECISION_COLORS[outcome.decision], bold=True)
    if outcome.sids:
        click.echo(f"  Deciding statements: {', '.join(sorted(outcome.sids))}")
    elif outcome.decision is Decision.IMPLICIT_DENY:
        click.echo("  No statement applies to the request")


def echo_error(message: object) -> None:
    click.echo(f"✗ {message}", err=True)
