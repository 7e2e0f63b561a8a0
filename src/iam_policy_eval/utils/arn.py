"""Amazon Resource Name parsing.

An ARN has the form ``arn:partition:service:region:account:resource``.
The resource part may itself contain colons (``function:my-fn:alias``),
so only the first five separators are structural.
"""

from __future__ import annotations

from dataclasses import dataclass

from iam_policy_eval.constants import ACCOUNT_ID_LENGTH, ARN_MIN_SEGMENTS, ARN_PREFIX

__all__ = [
    "Arn",
    "account_root_arn",
    "is_account_id",
    "looks_like_arn",
    "parse_arn",
]


@dataclass(frozen=True)
class Arn:
    """A parsed ARN.

    Attributes:
        partition: e.g. "aws", "aws-cn", "aws-us-gov".
        service: Service namespace, e.g. "s3", "iam".
        region: Region, empty for global services.
        account: Account ID, empty for some services (S3 buckets).
        resource: Resource part, may contain ":" and "/".
    """

    partition: str
    service: str
    region: str
    account: str
    resource: str

    def __str__(self) -> str:
        return ":".join(("arn", self.partition, self.service, self.region, self.account, self.resource))


def looks_like_arn(value: str) -> bool:
    """Check for the arn: prefix and the minimum number of segments."""
    return value.startswith(ARN_PREFIX) and value.count(":") >= ARN_MIN_SEGMENTS - 1


def parse_arn(value: str) -> Arn | None:
    """Parse an ARN string.

    Args:
        value: Candidate ARN text. Wildcards are kept as literal characters.

    Returns:
        Arn, or None if value is not ARN-shaped.
    """
    if not looks_like_arn(value):
        return None
    _, partition, service, region, account, resource = value.split(":", ARN_MIN_SEGMENTS - 1)
    return Arn(
        partition=partition,
        service=service,
        region=region,
        account=account,
        resource=resource,
    )


def is_account_id(value: str) -> bool:
    """Check whether value is a bare 12-digit AWS account ID."""
    return len(value) == ACCOUNT_ID_LENGTH and value.isascii() and value.isdigit()


def account_root_arn(account_id: str, partition: str = "aws") -> str:
    """Return the root-user ARN IAM uses for a bare account principal."""
    return f"arn:{partition}:iam::{account_id}:root"
