"""Main CLI entry point for iam-policy-eval.

Validates a policy document, or evaluates one simulated request against it.

Usage:
    iam-policy-eval -h, --help        Show help message
    iam-policy-eval -v, --version     Show version
    iam-policy-eval --policy FILE     Validate a policy
    iam-policy-eval --policy FILE --action ACTION --resource ARN [OPTIONS]
                                      Evaluate a request

Exit codes:
    0: Allow, or the policy is valid (parse-only run)
    1: ExplicitDeny/ImplicitDeny, or the policy/context/config could not be
       loaded, parsed or evaluated
    2: Invalid arguments
"""

import sys
from collections.abc import Mapping
from pathlib import Path

import click
from pydantic import ValidationError

from iam_policy_eval import __version__
from iam_policy_eval.config import AppConfig, get_config_path
from iam_policy_eval.constants import APP_NAME
from iam_policy_eval.context.parsing import merge_context, parse_context_pairs
from iam_policy_eval.context.request import ContextValues, PrincipalDescriptor, PrincipalKind, RequestContext
from iam_policy_eval.exceptions import ArgumentError, EvaluationError, ParseError
from iam_policy_eval.pdp.engine import PolicyEngine
from iam_policy_eval.utils.logging.logger_setup import setup_system_logger
from iam_policy_eval.utils.policy import load_context_file, load_policy

from .output import echo_error, echo_outcome, echo_policy_summary

__all__ = ["build_request", "cli", "main"]


class EvalCommand(click.Command):
    """Command that shows examples after the options section."""

    def format_epilog(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        """Add extra help after options section."""
        formatter.write(
            """
Examples:
  iam-policy-eval --policy policy.json

  iam-policy-eval --policy policy.json \\
    --action s3:GetObject \\
    --resource arn:aws:s3:::my-bucket/report.csv

  iam-policy-eval --policy bucket-policy.json \\
    --action s3:PutObject \\
    --resource arn:aws:s3:::my-bucket/upload \\
    --principal-aws arn:aws:iam::123456789012:user/alice \\
    --context aws:SecureTransport=true \\
    --context-file context.json

Context file format:
  {"global": {"aws:SourceIp": "10.0.0.1"},
   "resources": {"arn:aws:s3:::my-bucket/upload": {"s3:x-amz-acl": "private"}}}
"""
        )


def build_request(
    action: str | None,
    resource: str | None,
    principals: Mapping[PrincipalKind, str | None],
    context_keys: ContextValues,
) -> RequestContext | None:
    """Build the simulated request from CLI arguments.

    Args:
        action: --action value.
        resource: --resource value.
        principals: Principal kind to the value of its option (None if unset).
        context_keys: Merged context keys.

    Returns:
        RequestContext, or None for a parse-only run (no action and no resource).

    Raises:
        ArgumentError: If only one of action/resource is given, more than one
            principal is given, or a value is empty.
    """
    given = {kind: value for kind, value in principals.items() if value is not None}
    if len(given) > 1:
        raise ArgumentError(f"At most one principal may be given, got: {', '.join(given)}")

    if action is None and resource is None:
        if given:
            raise ArgumentError("A principal requires --action and --resource")
        return None
    if action is None or resource is None:
        raise ArgumentError("--action and --resource must be given together")

    principal = None
    try:
        if given:
            kind, value = next(iter(given.items()))
            principal = PrincipalDescriptor(kind=kind, value=value)
        return RequestContext(
            action=action,
            resource=resource,
            principal=principal,
            context_keys=context_keys,
        )
    except ValidationError as e:
        fields = ", ".join(".".join(str(x) for x in err["loc"]) for err in e.errors())
        raise ArgumentError(f"Invalid request arguments: {fields}") from e


def _load_config(config_path: Path | None) -> AppConfig:
    """Load the config file; a missing default config means defaults."""
    if config_path is not None:
        return AppConfig.load_from_file(config_path)
    default_path = get_config_path()
    if not default_path.exists():
        return AppConfig()
    return AppConfig.load_from_file(default_path)


@click.command(
    cls=EvalCommand,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.option(
    "--policy",
    "-p",
    "policy_paths",
    multiple=True,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to the policy document (JSON)",
)
@click.option("--action", "-a", help="Action to evaluate, e.g. s3:GetObject")
@click.option("--resource", "-r", help="Resource ARN to evaluate")
@click.option("--principal-aws", help="Calling AWS principal (ARN or account ID)")
@click.option("--principal-canonical-user", help="Calling canonical user ID")
@click.option("--principal-federated", help="Calling federated identity provider")
@click.option("--principal-service", help="Calling service principal, e.g. ec2.amazonaws.com")
@click.option(
    "--context",
    "-c",
    "context_pairs",
    multiple=True,
    metavar="KEY=VALUE",
    help="Request context key (repeatable; repeating a key adds a value)",
)
@click.option(
    "--context-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="JSON file with global and per-resource context keys",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to config.json (default: OS config location)",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING"], case_sensitive=False),
    help="Override the configured log level",
)
@click.option("--version", "-v", is_flag=True, help="Show version")
def cli(
    policy_paths: tuple[Path, ...],
    action: str | None,
    resource: str | None,
    principal_aws: str | None,
    principal_canonical_user: str | None,
    principal_federated: str | None,
    principal_service: str | None,
    context_pairs: tuple[str, ...],
    context_file: Path | None,
    config_path: Path | None,
    log_level: str | None,
    version: bool,
) -> None:
    """iam-policy-eval: Offline evaluator for AWS IAM policy documents."""
    if version:
        click.echo(f"{APP_NAME} {__version__}")
        sys.exit(0)
    if not policy_paths:
        raise click.UsageError("Missing option '--policy'.")
    if len(policy_paths) > 1:
        raise click.UsageError("Option '--policy' must be given exactly once.")
    policy_path = policy_paths[0]

    principals: dict[PrincipalKind, str | None] = {
        "AWS": principal_aws,
        "CanonicalUser": principal_canonical_user,
        "Federated": principal_federated,
        "Service": principal_service,
    }

    # Argument errors take precedence over file errors
    try:
        cli_context = parse_context_pairs(context_pairs)
        request = build_request(action, resource, principals, cli_context)
    except ArgumentError as e:
        raise click.UsageError(str(e)) from e

    try:
        config = _load_config(config_path)
    except (FileNotFoundError, ValueError) as e:
        echo_error(e)
        sys.exit(1)

    setup_system_logger(
        (log_level or config.logging.log_level).upper(),
        config.logging.log_file,
    )

    try:
        document = load_policy(policy_path)
    except (FileNotFoundError, ValueError) as e:
        echo_error(e)
        sys.exit(1)
    except ParseError as e:
        echo_error(f"Invalid policy {policy_path}: {e}")
        sys.exit(1)

    if request is None:
        echo_policy_summary(document, policy_path)
        sys.exit(0)

    try:
        file_context = load_context_file(context_file, resource) if context_file else {}
    except (FileNotFoundError, ValueError) as e:
        echo_error(e)
        sys.exit(1)

    context_keys = merge_context(config.evaluation.default_context, file_context, cli_context)
    request = request.model_copy(update={"context_keys": context_keys})

    try:
        outcome = PolicyEngine(document).evaluate(request)
    except EvaluationError as e:
        echo_error(f"Evaluation failed: {e}")
        sys.exit(1)

    echo_outcome(outcome)
    sys.exit(0 if outcome.allowed else 1)


def main() -> None:
    """CLI entry point."""
    cli()
